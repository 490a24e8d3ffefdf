"""Catalog vocabulary shared by navigation, category listing and recommendations"""

MAIN_CATEGORIES = [
    {"name": "Bollywood", "slug": "bollywood-movies"},
    {"name": "Hollywood", "slug": "hollywood-movies"},
    {"name": "Hindi Dubbed", "slug": "hindi-dubbed"},
    {"name": "South Hindi", "slug": "south-hindi-movies"},
    {"name": "Web Series", "slug": "web-series"},
    {"name": "18+", "slug": "adult"},
]

# Genre keywords recognised in free-text search queries
GENRES = [
    "Action", "Adventure", "Animation", "Biography", "Comedy",
    "Crime", "Drama", "Documentary", "Family", "Fantasy",
    "History", "Horror", "Musical", "Mystery", "Romance",
    "Sci-Fi", "Thriller", "War",
]

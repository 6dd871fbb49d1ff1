"""
Centralized Constants - SINGLE SOURCE OF TRUTH

Gujarat RERA source URLs, district lists, locality/pincode tables and the
pools used by the synthetic data generator live here and are imported
elsewhere.

DO NOT duplicate these definitions in other files.
"""

from datetime import date

# =============================================================================
# SOURCE PORTAL
# =============================================================================

RERA_BASE_URL = "https://gujrera.gujarat.gov.in"
RERA_SOURCE_DOMAIN = "gujrera.gujarat.gov.in"

# REST-like endpoints probed in order by the API-probe strategy
API_PROBE_ENDPOINTS = [
    "/api/projects/all",
    "/api/v1/projects",
    "/services/projectlist",
    "/Home/GetProjectList",
    "/PublicDashboard/GetProjects",
]

# Keys that may wrap the project list in a JSON payload
API_LIST_CONTAINER_KEYS = ("projects", "data", "result", "items", "records")

# Listing page patterns ({page} is 1-based)
PAGINATED_URL_PATTERNS = [
    "/PublicDashboard?page={page}",
    "/PublicDashboard/Index?page={page}",
    "/Home/ProjectList?page={page}",
    "/projects?page={page}",
]

# Per-district listing patterns ({district} is URL-encoded)
DISTRICT_URL_PATTERNS = [
    "/PublicDashboard?district={district}",
    "/projects/{district}",
    "/Home/ProjectList?city={district}",
]

LANDING_PATH = "/"

# =============================================================================
# DISTRICTS
# =============================================================================

GUJARAT_DISTRICTS = [
    "Gandhinagar",
    "Ahmedabad",
    "Surat",
    "Vadodara",
    "Rajkot",
    "Bhavnagar",
    "Jamnagar",
    "Junagadh",
    "Anand",
    "Bharuch",
    "Mehsana",
    "Patan",
    "Navsari",
    "Valsad",
    "Kutch",
]


def canonical_city(name: str) -> str:
    """
    Normalize a city/district name to title case ("AHMEDABAD" -> "Ahmedabad").

    Args:
        name: City or district name in any case

    Returns:
        Title-cased name with collapsed whitespace, or '' for empty input
    """
    if not name:
        return ""
    return " ".join(part.capitalize() for part in str(name).split())


# =============================================================================
# LOCALITIES (name, pincode) PER CITY
# =============================================================================

CITY_LOCALITIES = {
    "Gandhinagar": [
        ("Sargasan", "382421"),
        ("Kudasan", "382421"),
        ("Raysan", "382007"),
        ("Vavol", "382016"),
        ("Randesan", "382610"),
        ("Koba", "382426"),
        ("Adalaj", "382421"),
        ("Chandkheda", "382424"),
        ("Motera", "382424"),
        ("Tragad", "382470"),
    ],
    "Ahmedabad": [
        ("Bopal", "380058"),
        ("South Bopal", "380058"),
        ("Ghuma", "380058"),
        ("Shela", "380059"),
        ("Thaltej", "380054"),
        ("Satellite", "380015"),
        ("Prahlad Nagar", "380015"),
        ("Bodakdev", "380054"),
        ("Vastrapur", "380015"),
        ("SG Highway", "380054"),
        ("Sindhu Bhavan", "380054"),
        ("Makarba", "380051"),
        ("Vejalpur", "380051"),
        ("Gota", "382481"),
        ("Vaishnodevi", "382481"),
        ("Chandlodia", "382481"),
        ("Sola", "380063"),
        ("Science City", "380060"),
        ("Bhadaj", "380060"),
        ("Maninagar", "380008"),
    ],
    "Surat": [
        ("Vesu", "395007"),
        ("Althan", "395017"),
        ("Adajan", "395009"),
        ("Pal", "395009"),
        ("Palanpur", "395009"),
        ("Piplod", "395007"),
        ("Dumas", "394550"),
        ("Canal Road", "395007"),
        ("City Light", "395007"),
        ("Athwa", "395007"),
    ],
    "Vadodara": [
        ("Alkapuri", "390007"),
        ("Vasna", "390007"),
        ("Gotri", "390021"),
        ("Sevasi", "391101"),
        ("Bhayli", "391410"),
        ("Manjalpur", "390011"),
        ("Makarpura", "390010"),
        ("Waghodia", "391760"),
        ("Khodiyar Nagar", "390025"),
        ("Subhanpura", "390023"),
    ],
    "Rajkot": [
        ("Kalawad Road", "360001"),
        ("University Road", "360005"),
        ("Raiya Road", "360007"),
        ("Gondal Road", "360004"),
        ("Kothariya Road", "360022"),
        ("Sadhuvasvani Road", "360005"),
        ("Mavdi", "360004"),
        ("Aji Vasahat", "360003"),
        ("Nana Mauva", "360005"),
        ("Madhapar", "360006"),
    ],
}


def get_localities_for_city(city: str) -> list:
    """Return [(locality, pincode), ...] for a city, empty list if unknown."""
    return list(CITY_LOCALITIES.get(canonical_city(city), []))


# =============================================================================
# SYNTHETIC DATA POOLS
# =============================================================================

# Default target record counts per city
DEFAULT_CITY_WEIGHTS = {
    "Gandhinagar": 300,
    "Ahmedabad": 400,
    "Surat": 250,
    "Vadodara": 200,
    "Rajkot": 150,
}
DEFAULT_CITY_WEIGHT = 100

# Registration-id office codes seen on real certificates
CITY_REGISTRATION_CODES = {
    "Gandhinagar": "MAA",
    "Ahmedabad": "RAA",
    "Surat": "RSU",
    "Vadodara": "RVD",
    "Rajkot": "RRJ",
}
DEFAULT_REGISTRATION_CODE = "REG"

# Seed used when SYNTHETIC_SEED is unset; fallback runs must reproduce the same ids
DEFAULT_SYNTHETIC_SEED = 20170501

# Registration-id dates count back from this day, never from today
SYNTHETIC_REGISTRY_ANCHOR = date(2024, 3, 31)

# Flagship projects used for the first slots of each city: (name, developer)
CURATED_PROJECTS = {
    "Gandhinagar": [
        ("Swagat GlassGlow", "Swagat Group"),
        ("Satyam Skyline", "Satyam Developers"),
        ("Shivalik Heights", "Shivalik Buildcon"),
        ("Akshar Orchid", "Akshar Group"),
    ],
    "Ahmedabad": [
        ("Godrej Garden City", "Godrej Properties"),
        ("Sun Sky Park", "Sun Builders"),
        ("Shela One", "Shivalik Group"),
        ("Binori Pristine", "Binori Group"),
        ("Safal Parishkaar", "Safal Group"),
        ("Ganesh Genesis", "Ganesh Housing"),
    ],
    "Surat": [
        ("Dream Heritage", "Dream Group"),
        ("Shree Rang Residency", "Shree Rang Developers"),
        ("Happy Home Elanza", "Happy Home Group"),
    ],
    "Vadodara": [
        ("Alembic Urban Forest", "Alembic Group"),
        ("Sakar Heights", "Sakar Developers"),
        ("Suncity Platinum", "Suncity Developers"),
    ],
    "Rajkot": [
        ("Akshar Elegance", "Akshar Developers"),
        ("Radhe Heights", "Radhe Developers"),
        ("Shivam Residency", "Shivam Group"),
    ],
}

DEVELOPERS = [
    "Adani Realty",
    "Godrej Properties",
    "Safal Group",
    "Sun Builders",
    "Ganesh Housing",
    "Shivalik Group",
    "Binori Group",
    "Bakeri Group",
    "Satyam Developers",
    "Akshar Group",
    "Dream Group",
    "Happy Home",
    "Alembic Group",
    "Sakar Developers",
    "Radhe Developers",
    "Shree Rang",
    "Suncity Developers",
    "Swagat Group",
    "Shivam Group",
    "Mahavir Group",
]

PROJECT_NAME_SUFFIXES = [
    "Heights",
    "Residency",
    "Paradise",
    "Garden",
    "Elite",
    "Premium",
    "Royal",
    "Grand",
    "Avenue",
    "Plaza",
]
COMMERCIAL_NAME_SUFFIX = "Business Park"

# Weighted project-type draw for synthetic records
SYNTHETIC_PROJECT_TYPES = [
    ("Residential", 70),
    ("Commercial", 15),
    ("Mixed", 10),
    ("Plotted", 5),
]

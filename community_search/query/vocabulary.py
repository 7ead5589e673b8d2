"""Closed dictionaries and phrase lists used by the deterministic extractor."""

import re

# Canonical city and state names. Aliases below collapse onto these.
CITIES = [
    "Chennai",
    "Bangalore",
    "Hyderabad",
    "Mumbai",
    "Delhi",
    "Pune",
    "Kolkata",
    "Coimbatore",
    "Madurai",
    "Gurgaon",
    "Noida",
    "Ahmedabad",
    "Kochi",
    "Trichy",
    "Salem",
]

STATES = [
    "Tamil Nadu",
    "Karnataka",
    "Telangana",
    "Maharashtra",
    "Kerala",
    "Andhra Pradesh",
    "Gujarat",
]

LOCATION_ALIASES = {
    "bengaluru": "Bangalore",
    "bombay": "Mumbai",
    "madras": "Chennai",
    "new delhi": "Delhi",
    "gurugram": "Gurgaon",
    "calcutta": "Kolkata",
    "cochin": "Kochi",
    "tiruchirappalli": "Trichy",
}

GAZETTEER = CITIES + STATES + [alias.title() for alias in LOCATION_ALIASES]

# Uppercase abbreviations, matched case-sensitively before any full-word pattern
DEGREE_ABBREVIATIONS = {
    "ECE": "Electronics and Communication Engineering",
    "EEE": "Electrical and Electronics Engineering",
    "CSE": "Computer Science Engineering",
    "IT": "Information Technology",
    "MBA": "MBA",
    "MCA": "MCA",
    "BE": "Bachelor of Engineering",
    "ME": "Master of Engineering",
}

# Dotted degree forms ("B.Tech", "M.E.") keyed by their letters, lowercased
DOTTED_DEGREES = {
    "btech": "Bachelor of Technology",
    "mtech": "Master of Technology",
    "be": "Bachelor of Engineering",
    "me": "Master of Engineering",
}

# Full-word branch names; order matters where one phrase contains another
DEGREE_PHRASES = [
    (r"electronics?\s+(?:and|&)\s+communication", "Electronics and Communication Engineering"),
    (r"electrical\s+(?:and|&)\s+electronics?", "Electrical and Electronics Engineering"),
    (r"computer\s+science", "Computer Science Engineering"),
    (r"information\s+technology", "Information Technology"),
    (r"mechanical", "Mechanical Engineering"),
    (r"civil", "Civil Engineering"),
    (r"textile", "Textile Engineering"),
    (r"chemical", "Chemical Engineering"),
    (r"biotech(?:nology)?", "Biotechnology"),
    (r"electrical", "Electrical and Electronics Engineering"),
    (r"electronics", "Electronics and Communication Engineering"),
    (r"master\s+of\s+business\s+administration", "MBA"),
    (r"master\s+of\s+computer\s+applications", "MCA"),
]

SKILL_VOCABULARY = [
    "web development",
    "web design",
    "software development",
    "software",
    "app development",
    "mobile development",
    "digital marketing",
    "content marketing",
    "marketing",
    "SEO",
    "IT consulting",
    "business consulting",
    "consulting",
    "manufacturing",
    "construction",
    "architecture",
    "real estate",
    "packaging",
    "logistics",
    "artificial intelligence",
    "machine learning",
    "data science",
    "AI",
    "ML",
    "cloud",
    "AWS",
    "Azure",
    "devops",
    "android",
    "iOS",
    "UI/UX",
    "graphic design",
    "design",
    "quality assurance",
    "testing",
    "QA",
    "security",
    "cybersecurity",
    "networking",
    "blockchain",
    "cryptocurrency",
    "healthcare",
    "medical",
    "pharma",
    "e-learning",
    "education",
    "training",
    "fintech",
    "finance",
    "accounting",
    "audit",
    "recruitment",
    "talent acquisition",
    "HR",
]

# Words that never start or end a free-text skill/service span
SPAN_STOPWORDS = {
    "a", "an", "the", "any", "anyone", "someone", "somebody", "who", "which",
    "that", "does", "do", "doing", "can", "could", "find", "need", "needs",
    "want", "me", "us", "i", "we", "for", "to", "in", "at", "of", "on",
    "with", "and", "or", "is", "are", "good", "best", "some", "get", "looking",
    "provide", "provides", "providing", "offer", "offers", "offering", "our",
    "my", "please", "show", "list", "give",
}

FREE_TEXT_MIN_LENGTH = 3
FREE_TEXT_MAX_LENGTH = 50

CONVERSATIONAL_MARKERS = [
    "can you",
    "could you",
    "please",
    "i want",
    "i need",
    "help me",
    "looking for",
    "interested in",
    "recommend",
    "suggest",
]

COMPARISON_PATTERN = re.compile(r"\b(?:compare|comparing|comparison|versus|vs\.?)(?=\s|$)", re.IGNORECASE)
BOOLEAN_PATTERN = re.compile(r"\b(?:or|either|neither|nor)\b", re.IGNORECASE)

SERVICE_KEYWORDS = [
    "service",
    "services",
    "company",
    "companies",
    "provider",
    "providers",
    "vendor",
    "vendors",
    "agency",
    "agencies",
    "startup",
    "startups",
    "business",
    "businesses",
    "firm",
    "firms",
    "consultant",
    "consultants",
    "freelancer",
    "contractor",
    "supplier",
    "solutions",
]

MEMBER_KEYWORDS = [
    "find",
    "who",
    "anyone",
    "someone",
    "member",
    "members",
    "alumni",
    "batch",
    "batchmate",
    "classmate",
    "people",
    "person",
    "contact",
    "graduates",
    "passout",
]


def alternation(names: list[str]) -> str:
    """Regex alternation over phrases, longest first, whitespace-tolerant."""
    ordered = sorted(set(names), key=len, reverse=True)
    return "|".join(re.escape(name).replace(r"\ ", r"\s+") for name in ordered)


def normalize_location(raw: str) -> str:
    """Collapse aliases and title-case a matched place name."""
    collapsed = " ".join(raw.split()).lower()
    if collapsed in LOCATION_ALIASES:
        return LOCATION_ALIASES[collapsed]
    return " ".join(word.capitalize() for word in collapsed.split(" "))

"""
Click Prediction Constants for CRO Signal Engine

Feature weights, traffic/device modifiers, industry priors and keyword lists
shared by the click prediction components.
"""

from typing import Dict, List

FEATURE_WEIGHTS: Dict[str, float] = {
    # Core interaction features
    "visibility": 0.15,
    "information_scent": 0.12,
    "friction": 0.10,
    "interactivity": 0.08,
    "heatmap_attention": 0.09,
    # Prominence
    "size_prominence": 0.06,
    "contrast": 0.04,
    # Content and credibility
    "credibility": 0.08,
    "content_depth": 0.07,
    "intent": 0.06,
    "visual_affordance": 0.06,
    "scroll_depth": 0.05,
    # Page-level priors
    "performance": 0.05,
    "ad_match": 0.04,
    "trust_boost": 0.04,
    "social_proof_boost": 0.03,
    "progress_indication": 0.03,
    # Enhancement factors
    "urgency_boost": 0.02,
    "auto_completion": 0.02,
    "field_grouping": 0.02,
    "cross_device_priming": 0.01,
    # Penalties
    "dead_click_risk": -0.04,
    "cognitive_load_penalty": -0.02,
    "field_complexity": -0.08,
}

MAX_ELEMENTS = 100
MAX_FORM_FIELDS = 20
MIN_SCORE = 0.001
MIN_CLICKS = 0.1
MIN_CTR_PERCENT = 0.01
MAX_WASTE_RATE = 0.8

ABOVE_FOLD_MULTIPLIER = 1.0
BELOW_FOLD_MULTIPLIER = 0.6
INVISIBLE_MULTIPLIER = 0.1
FORM_FIELD_MULTIPLIER = 0.8
BUTTON_STYLING_MULTIPLIER = 1.2
INTERACTIVE_MULTIPLIER = 1.1

AVG_CLICKS_PER_ENGAGED_USER = 2.3
DEFAULT_BOUNCE_RATE = 0.6
PARETO_TOP_SHARE = 0.2
PARETO_BOOST = 0.1

FORM_FIELD_TAGS = ("input", "textarea", "select")

# ======================
# Traffic priors
# ======================

TRAFFIC_SOURCE_MODIFIERS: Dict[str, float] = {
    "organic": 0.85,
    "paid": 1.2,
    "social": 0.7,
    "email": 1.1,
    "direct": 0.9,
    "referral": 0.8,
    "linkedin": 0.8,
    "unknown": 0.75,
}

DEVICE_MODIFIERS: Dict[str, float] = {
    "desktop": 1.0,
    "mobile": 0.85,
    "tablet": 0.95,
}

BASE_BOUNCE_RATES: Dict[str, float] = {
    "organic": 0.45,
    "paid": 0.65,
    "social": 0.7,
    "email": 0.35,
    "direct": 0.4,
    "referral": 0.55,
}

INDUSTRY_MODIFIERS: Dict[str, Dict[str, float]] = {
    "saas": {"form_completion_rate": 0.85, "cta_click_rate": 1.2, "avg_cpc": 8.5},
    "ecommerce": {"form_completion_rate": 0.75, "cta_click_rate": 1.4, "avg_cpc": 1.16},
    "leadgen": {"form_completion_rate": 0.65, "cta_click_rate": 1.1, "avg_cpc": 4.2},
    "content": {"form_completion_rate": 0.7, "cta_click_rate": 0.9, "avg_cpc": 2.4},
    "legal": {"form_completion_rate": 0.8, "cta_click_rate": 1.3, "avg_cpc": 6.75},
    "finance": {"form_completion_rate": 0.75, "cta_click_rate": 1.1, "avg_cpc": 3.44},
    "technology": {"form_completion_rate": 0.8, "cta_click_rate": 1.2, "avg_cpc": 3.8},
    "automotive": {"form_completion_rate": 0.7, "cta_click_rate": 1.0, "avg_cpc": 2.46},
    "realestate": {"form_completion_rate": 0.75, "cta_click_rate": 1.1, "avg_cpc": 2.37},
    "travel": {"form_completion_rate": 0.65, "cta_click_rate": 0.9, "avg_cpc": 1.53},
    "consumerservices": {"form_completion_rate": 0.7, "cta_click_rate": 1.0, "avg_cpc": 6.4},
    "education": {"form_completion_rate": 0.75, "cta_click_rate": 0.95, "avg_cpc": 2.4},
    "healthcare": {"form_completion_rate": 0.78, "cta_click_rate": 1.15, "avg_cpc": 4.8},
}

# ======================
# CPC modifiers
# ======================

BASE_CPC = 2.93
B2B_CPC_MULTIPLIER = 1.24
B2C_CPC_MULTIPLIER = 0.98

TRAFFIC_SOURCE_CPC: Dict[str, float] = {
    "organic": 0.0,
    "paid": 1.0,
    "social": 0.4,
    "email": 0.05,
    "direct": 0.0,
    "referral": 0.15,
    "unknown": 0.3,
    "linkedin": 2.0,
}

DEVICE_CPC_MODIFIERS: Dict[str, float] = {"desktop": 1.0, "mobile": 0.85, "tablet": 0.92}
GEO_MODIFIERS: Dict[str, float] = {"tier1": 1.0, "tier2": 0.7, "tier3": 0.4, "unknown": 0.8}
COMPETITION_MODIFIERS: Dict[str, float] = {"high": 1.4, "medium": 1.0, "low": 0.7, "unknown": 1.0}
QUALITY_SCORE_MODIFIERS: Dict[str, float] = {
    "excellent": 0.7,
    "good": 0.85,
    "average": 1.0,
    "poor": 1.3,
    "unknown": 1.0,
}

# ======================
# Element classification waste rates
# ======================

ELEMENT_WASTE_RATES: Dict[str, float] = {
    "navigation": 0.4,
    "social_media": 0.35,
    "external_link": 0.3,
    "interruptive": 0.3,
    "autoplay_media": 0.25,
    "competing_cta": 0.2,
    "internal_navigation": 0.1,
    "supporting_content": 0.05,
    "trust_indicator": 0.05,
    "unknown": 0.15,
}

ATTENTION_RATIO_WASTE = [
    # (interactive elements per CTA above, waste rate)
    (20, 0.25),
    (10, 0.15),
]

VISUAL_EMPHASIS_WASTE: Dict[str, float] = {
    "high_contrast_distraction": 0.1,
    "sticky_navigation": 0.2,
    "sticky_cta": -0.05,
    "auto_rotating": 0.15,
    "high_z_index_overlay": 0.1,
}

CONTENT_CLUTTER_WASTE: Dict[str, float] = {
    "long_text": 0.1,
    "decorative": 0.05,
    "visual_noise": 0.08,
    "competing_elements": 0.12,
}

LEGACY_QUALITY_WASTE: Dict[str, float] = {
    "non_interactive": 0.3,
    "missing_button_styling": 0.1,
    "below_fold": 0.1,
    "minimal_text": 0.15,
}

SOCIAL_DOMAINS: List[str] = [
    "facebook.com",
    "twitter.com",
    "x.com",
    "instagram.com",
    "linkedin.com",
    "youtube.com",
    "tiktok.com",
    "pinterest.com",
]

# ======================
# Field and keyword tables
# ======================

FIELD_TYPE_COMPLEXITY: Dict[str, float] = {
    "text": 0.1,
    "email": 0.3,
    "password": 0.5,
    "tel": 0.4,
    "number": 0.2,
    "date": 0.3,
    "select": 0.2,
    "textarea": 0.4,
    "checkbox": 0.1,
    "radio": 0.1,
}
DEFAULT_FIELD_COMPLEXITY = 0.3

HIGH_INTENT_KEYWORDS: List[str] = [
    "buy", "purchase", "order", "get", "start", "begin", "try", "download",
    "sign up", "signup", "register", "join", "subscribe", "book", "schedule",
    "request", "claim", "unlock", "access", "upgrade", "activate",
]

CTA_PATTERNS: List[str] = ["get", "start", "try", "buy", "sign up", "download", "learn more"]

URGENCY_KEYWORDS: List[str] = [
    "now", "today", "limited", "hurry", "fast", "quick", "instant", "immediate",
    "deadline", "expires", "ending", "last chance", "final", "urgent",
]

TRUST_INDICATORS: List[str] = [
    "guarantee", "secure", "safe", "protected", "verified", "certified",
    "trusted", "ssl", "encrypted", "privacy", "refund", "money back",
]

INDUSTRY_CONTENT_KEYWORDS: Dict[str, List[str]] = {
    "legal": [
        "attorney", "lawyer", "legal", "law firm", "litigation", "lawsuit", "court",
        "legal advice", "legal services", "paralegal", "personal injury",
        "criminal defense", "divorce", "custody", "estate planning", "bankruptcy",
        "workers compensation", "medical malpractice", "wrongful death",
    ],
    "finance": [
        "bank", "banking", "loan", "mortgage", "insurance", "financial", "investment",
        "credit", "finance", "wealth management", "financial advisor", "retirement",
        "portfolio", "stocks", "bonds", "mutual funds", "401k", "annuity", "refinance",
    ],
    "technology": [
        "software", "technology", "tech", "ai", "artificial intelligence",
        "machine learning", "cloud", "api", "development", "programming", "coding",
        "web development", "cybersecurity", "analytics", "blockchain", "automation", "iot",
    ],
    "saas": [
        "saas", "software as a service", "platform", "dashboard", "subscription",
        "cloud-based", "enterprise software", "business software", "crm", "erp",
        "project management", "collaboration", "productivity", "workflow",
        "integration", "scalable", "b2b software",
    ],
    "ecommerce": [
        "shop", "store", "buy", "purchase", "cart", "checkout", "product", "sale",
        "discount", "free shipping", "return policy", "customer reviews", "wishlist",
        "catalog", "marketplace", "retail", "online store", "e-commerce",
        "secure checkout", "add to cart", "buy now",
    ],
    "realestate": [
        "real estate", "property", "homes", "house", "apartment", "condo", "rental",
        "buy home", "sell home", "realtor", "listing", "mls", "property management",
        "residential", "investment property", "home value",
    ],
    "healthcare": [
        "doctor", "medical", "health", "healthcare", "clinic", "hospital", "physician",
        "dentist", "dental", "surgery", "treatment", "patient", "appointment",
        "specialist", "therapy", "diagnosis", "prescription", "telehealth", "urgent care",
    ],
    "education": [
        "education", "school", "university", "college", "course", "training", "learn",
        "student", "degree", "certification", "online learning", "e-learning",
        "tutorial", "instructor", "curriculum", "academic", "enrollment", "tuition",
    ],
    "travel": [
        "travel", "hotel", "flight", "booking", "vacation", "trip", "resort", "airline",
        "cruise", "tour", "destination", "accommodation", "reservation", "hospitality",
        "tourism", "package deal",
    ],
    "automotive": [
        "auto", "car", "vehicle", "automotive", "dealership", "used cars", "new cars",
        "truck", "suv", "motorcycle", "lease", "trade-in",
    ],
    "consumerservices": [
        "cleaning", "landscaping", "plumbing", "electrical", "hvac", "roofing",
        "painting", "renovation", "home improvement", "contractor", "handyman",
        "installation", "emergency service", "local service", "licensed", "insured",
    ],
}

# Checked in order; first industry with a matching URL keyword wins
INDUSTRY_URL_KEYWORDS = [
    ("saas", ["saas", "software", "app", "platform"]),
    ("ecommerce", ["shop", "store", "buy", "cart"]),
    ("legal", ["law", "legal", "attorney", "lawyer"]),
    ("finance", ["bank", "finance", "insurance", "loan"]),
    ("technology", ["tech", "ai", "cloud", "api"]),
    ("realestate", ["realestate", "realty", "property", "homes"]),
    ("travel", ["travel", "hotel", "flight", "booking"]),
    ("automotive", ["auto", "car", "cars", "vehicle", "dealer"]),
]

B2B_INDUSTRIES = ["saas", "technology", "legal", "finance", "leadgen", "healthcare"]
B2C_INDUSTRIES = ["ecommerce", "travel", "consumerservices"]
B2B_URL_KEYWORDS = ["enterprise", "business", "b2b", "corporate"]
B2C_URL_KEYWORDS = ["consumer", "personal", "individual"]

B2B_CONTENT_KEYWORDS = [
    "enterprise", "business", "corporate", "b2b", "professional", "organization",
    "company", "team", "workflow", "productivity", "collaboration", "integration",
    "scalable", "roi", "efficiency", "automation", "dashboard", "analytics",
]
B2C_CONTENT_KEYWORDS = [
    "personal", "individual", "family", "home", "consumer", "lifestyle", "everyday",
    "simple", "easy", "convenient", "affordable", "budget", "save money", "deal",
    "discount", "free trial", "no commitment",
]

HIGH_COMPETITION_INDUSTRIES = ["legal", "finance", "consumerservices", "saas", "healthcare"]
MEDIUM_COMPETITION_INDUSTRIES = ["technology", "automotive", "realestate"]
LOW_COMPETITION_INDUSTRIES = ["content", "travel"]

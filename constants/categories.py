# Municipal categories seeded on first start.
DEFAULT_CATEGORIES = (
    "Roads & Potholes",
    "Street Lighting",
    "Waste Management",
    "Water Supply",
    "Drainage & Sewage",
    "Parks & Public Spaces",
    "Traffic Signals",
    "Other",
)

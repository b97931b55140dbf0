"""
Priority names with their numeric rank (higher = more urgent).
Sorting issues by priority uses the rank, never the name.
"""

HIGHEST = "Highest"
HIGH = "High"
MEDIUM = "Medium"
LOW = "Low"
LOWEST = "Lowest"

PRIORITY_RANKS = {
    HIGHEST: 5,
    HIGH: 4,
    MEDIUM: 3,
    LOW: 2,
    LOWEST: 1,
}

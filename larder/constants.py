"""Shared constants for larder."""

DEFAULT_STATE_DIR = "data"
ANALYSIS_FILENAME = "analysis-results.json"
WORKFLOW_STATE_FILENAME = "workflow-state.json"
RUNS_DIRNAME = "runs"

DEFAULT_AI_MODEL = "google-gla:gemini-2.0-flash"
DEFAULT_PACING_DELAY_S = 1.0
DEFAULT_VARIATION_DELAY_S = 2.0
MAX_TITLE_LENGTH = 100

DEFAULT_SCHEDULE_INTERVAL_DAYS = 7

# Canonical valid ingredient types. Older analysis code only accepted the
# first four values.
VALID_INGREDIENT_TYPES = (
    "protein",
    "grain",
    "vegetable",
    "fruit",
    "sweetener",
    "condiment",
    "pastry",
    "dairy",
    "oil",
    "herb",
    "spice",
    "liquid",
)

VALID_MEAL_TYPES = ("protein", "grain", "vegetable", "fruit")

VALID_COOKING_METHODS = (
    "raw",
    "frying",
    "grilling",
    "boiling",
    "smoothie",
    "roasting",
    "mashing",
    "baking",
    "sautéing",
    "soup",
    "poaching",
    "braising",
    "other",
)

VALID_SEASONS = (
    "spring",
    "summer",
    "autumn",
    "winter",
    "year-round",
    "fall/winter",
    "spring/summer",
)

VALID_RAINBOW_COLORS = (
    "red",
    "orange",
    "yellow",
    "green",
    "blue",
    "purple",
    "white",
    "brown",
    "pink",
    "black",
)

DEFAULT_FEATURES = {
    "fiber": "0",
    "g_i": "0",
    "season": "year-round",
    "water": "0",
    "rainbow": "white",
}

DEFAULT_STORAGE_OPTIONS = {
    "countertop": "not recommended",
    "fridge": "recommended",
    "freezer": "not recommended",
}

DEFAULT_TECHNIQUES = ("raw",)

# Placeholder keys found in hand-entered ingredient maps
PLACEHOLDER_INGREDIENT_NAMES = (
    "ingredient",
    "item",
    "food",
    "stuff",
    "thing",
    "unknown",
    "n/a",
    "none",
)

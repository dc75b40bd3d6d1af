"""
Centralized constants for the farm keeper.

All hardcoded game values should be defined here for easy maintenance.
Values that players may want to tune live in config/settings.yaml instead.
"""

from enum import IntEnum


# =============================================================================
# GROWTH PHASES (server enum)
# =============================================================================
class PlantPhase(IntEnum):
    """Phase tag carried by each entry of a plant's phase list."""
    UNKNOWN = 0
    SEED = 1
    GERMINATION = 2
    SMALL_LEAVES = 3
    LARGE_LEAVES = 4
    BLOOMING = 5
    MATURE = 6
    DEAD = 7


PHASE_NAMES = {
    PlantPhase.UNKNOWN: "unknown",
    PlantPhase.SEED: "seed",
    PlantPhase.GERMINATION: "sprout",
    PlantPhase.SMALL_LEAVES: "small leaves",
    PlantPhase.LARGE_LEAVES: "large leaves",
    PlantPhase.BLOOMING: "blooming",
    PlantPhase.MATURE: "mature",
    PlantPhase.DEAD: "dead",
}

# =============================================================================
# REMOTE SERVICES
# =============================================================================
PLANT_SERVICE = "gamepb.plantpb.PlantService"
SHOP_SERVICE = "gamepb.shoppb.ShopService"
ITEM_SERVICE = "gamepb.itempb.ItemService"

# =============================================================================
# ITEMS AND SHOPS
# =============================================================================
NORMAL_FERTILIZER_ID = 1011
SEED_SHOP_ID = 2

# Shop goods condition type that carries the required player level
COND_TYPE_LEVEL = 1

# Below this many normal fertilizer units, rank seeds by the no-fertilizer rate
FERTILIZER_LOW_THRESHOLD = 10

# =============================================================================
# YIELD MODEL
# =============================================================================
# Drag-planting speed observed in game: 18 plots / 2s bare, 12 plots / 2s with fertilizer
NO_FERT_PLANT_SPEED_PER_SEC = 18 / 2
NORMAL_FERT_PLANT_SPEED_PER_SEC = 12 / 2

# Normal fertilizer shortens growth by 20%, never less than 30 seconds
FERT_PERCENT = 0.2
FERT_MIN_REDUCE_SEC = 30

# =============================================================================
# TIMING
# =============================================================================
PER_PLOT_INTERVAL_SEC = 0.05      # spacing between per-plot drag operations
PUSH_DEBOUNCE_SEC = 0.5
PUSH_CHECK_DELAY_SEC = 0.1
IMMINENT_MATURE_SEC = 2           # refresh when something matures within this window
LOOP_START_DELAY_SEC = 2.0

# =============================================================================
# DISPLAY
# =============================================================================
LANDS_PER_LINE = 4
NAME_DISPLAY_WIDTH = 8

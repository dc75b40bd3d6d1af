"""
Farm Planning Module - Decide what the farm needs before touching it.

Provides:
- models: Land / Plant / GrowthPhase built from AllLands replies, snapshots,
  seed yield records
- land_analyzer.LandAnalyzer: classify lands into action buckets
- crop_advisor.CropAdvisor: pick the seed with the best experience per hour

Only the models are re-exported here; game_config depends on them, so the
analyzer and advisor are imported from their own modules.
"""

from .models import (
    BestSeedCache,
    BestSeeds,
    FarmSnapshot,
    GrowthPhase,
    HarvestInfo,
    Land,
    LandAnalysis,
    LandSnapshot,
    Plant,
    SeedCandidate,
    SeedChoice,
    to_int,
    to_num,
    to_time_sec,
)

__all__ = [
    "BestSeedCache",
    "BestSeeds",
    "FarmSnapshot",
    "GrowthPhase",
    "HarvestInfo",
    "Land",
    "LandAnalysis",
    "LandSnapshot",
    "Plant",
    "SeedCandidate",
    "SeedChoice",
    "to_int",
    "to_num",
    "to_time_sec",
]

"""
KetoLens food resolution and scoring pipeline.

Resolves barcodes and food images to a keto verdict (score, verdict,
macros, swap suggestion) with caching, retries and graceful degradation.

Structure:
- domain/: Scoring rules, models and ports
- infrastructure/: OpenFoodFacts, vision back ends, persistence, config
- application/: Cache store, vision cascade, corrections, orchestrator
- tests/: Unit test suite
"""

__version__ = "0.1.0"

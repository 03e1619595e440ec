"""
Configuration module.
"""
import os
from dotenv import load_dotenv
from typing import NamedTuple

# Load .env file
load_dotenv()


class GapThresholds(NamedTuple):
    """Day thresholds for gap severity tiers"""
    info: int      # > info days: info
    warning: int   # > warning days: warning
    critical: int  # > critical days: critical


class ScoreWeights(NamedTuple):
    """Weights of the completeness score components (sum to 100)"""
    coverage: float
    birth_record: float
    release_record: float


class Settings:
    """Global settings"""

    project_name = "AeroTrace"
    debug = os.getenv("DEBUG", "False").lower() == "true"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # --- Gap detection ---
    GAP_INFO_DAYS = int(os.getenv("GAP_INFO_DAYS", "30"))
    GAP_WARNING_DAYS = int(os.getenv("GAP_WARNING_DAYS", "90"))
    GAP_CRITICAL_DAYS = int(os.getenv("GAP_CRITICAL_DAYS", "180"))

    # --- Completeness score ---
    SCORE_WEIGHT_COVERAGE = float(os.getenv("SCORE_WEIGHT_COVERAGE", "70"))
    SCORE_WEIGHT_BIRTH_RECORD = float(os.getenv("SCORE_WEIGHT_BIRTH_RECORD", "15"))
    SCORE_WEIGHT_RELEASE_RECORD = float(os.getenv("SCORE_WEIGHT_RELEASE_RECORD", "15"))

    # --- Exception rules ---
    UNSIGNED_DOC_MAX_AGE_DAYS = int(os.getenv("UNSIGNED_DOC_MAX_AGE_DAYS", "30"))

    # Commercial service rarely exceeds 6-8 cycles/day or 10-14 hours/day
    MAX_CYCLES_PER_DAY = float(os.getenv("MAX_CYCLES_PER_DAY", "20"))
    MAX_HOURS_PER_DAY = float(os.getenv("MAX_HOURS_PER_DAY", "18"))

    # --- Fleet scan ---
    # Sized to the data store's connection budget
    SCAN_MAX_CONCURRENCY = int(os.getenv("SCAN_MAX_CONCURRENCY", "4"))
    LOAD_RETRY_ATTEMPTS = int(os.getenv("LOAD_RETRY_ATTEMPTS", "3"))
    LOAD_RETRY_WAIT_SECONDS = float(os.getenv("LOAD_RETRY_WAIT_SECONDS", "0.2"))

    # --- Storage ---
    RUNS_DIR = os.getenv("AEROTRACE_RUNS_DIR", "data/runs")
    FLEET_FILE = os.getenv("AEROTRACE_FLEET_FILE", "data/fleet.json")

    def get_gap_thresholds(self) -> GapThresholds:
        """Gap severity thresholds in days"""
        return GapThresholds(
            info=self.GAP_INFO_DAYS,
            warning=self.GAP_WARNING_DAYS,
            critical=self.GAP_CRITICAL_DAYS,
        )

    def get_score_weights(self) -> ScoreWeights:
        return ScoreWeights(
            coverage=self.SCORE_WEIGHT_COVERAGE,
            birth_record=self.SCORE_WEIGHT_BIRTH_RECORD,
            release_record=self.SCORE_WEIGHT_RELEASE_RECORD,
        )


settings = Settings()

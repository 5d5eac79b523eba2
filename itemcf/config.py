from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


# ---------------------------
# Paths
# ---------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_DIR = PROJECT_ROOT / "data"
DEFAULT_INPUT_PATH = DATA_DIR / "preferences.csv"
DEFAULT_OUTPUT_PATH = DATA_DIR / "recommendations.txt"
DEFAULT_TEMP_DIR = DATA_DIR / "tmp"

# Per-phase datasets under the temp dir
ITEM_ID_INDEX_DATASET = "itemIDIndex.pkl"
USER_VECTORS_DATASET = "userVectors.pkl"
COOCCURRENCE_DATASET = "cooccurrence.pkl"
PARTIAL_MULTIPLY_DATASET = "partialMultiply.pkl"
PIPELINE_STATE_FILE = "pipeline_state.json"


# ---------------------------
# Recommendation defaults
# ---------------------------

DEFAULT_NUM_RECOMMENDATIONS = 10
DEFAULT_MAX_PREFS_PER_USER = 10   # K: prefs per user kept for the join

BOOLEAN_PREF_VALUE = 1.0


# ---------------------------
# Execution
# ---------------------------

DEFAULT_WORKERS = int(os.getenv("ITEMCF_WORKERS", "1"))
# Split count fixes the combiner grouping, so results do not depend on workers
DEFAULT_NUM_SPLITS = 4


# ---------------------------
# Serving
# ---------------------------

RECOMMENDATIONS_PATH = Path(
    os.getenv("ITEMCF_RECOMMENDATIONS_PATH", str(DEFAULT_OUTPUT_PATH))
)


# ---------------------------
# Logging
# ---------------------------

LOG_LEVEL = os.getenv("ITEMCF_LOG_LEVEL", "INFO")


# ---------------------------
# Pydantic models shared around the app
# ---------------------------

class PipelineConfig(BaseModel):
    """
    Everything one recommender run needs.

    Phases are numbered 0..4 (see ``itemcf.state.Phase``); ``start_phase`` and
    ``end_phase`` bound the phases that may run.
    """

    input_path: Path = DEFAULT_INPUT_PATH
    output_path: Path = DEFAULT_OUTPUT_PATH
    temp_dir: Path = DEFAULT_TEMP_DIR
    users_file: Optional[Path] = None
    num_recommendations: int = Field(DEFAULT_NUM_RECOMMENDATIONS, ge=1)
    boolean_data: bool = False
    max_prefs_per_user: int = Field(DEFAULT_MAX_PREFS_PER_USER, ge=1)
    start_phase: int = Field(0, ge=0, le=4)
    end_phase: int = Field(4, ge=0, le=4)
    resume: bool = False
    workers: int = Field(DEFAULT_WORKERS, ge=1)
    num_splits: int = Field(DEFAULT_NUM_SPLITS, ge=1)

    @model_validator(mode="after")
    def _check_phase_range(self) -> "PipelineConfig":
        if self.start_phase > self.end_phase:
            raise ValueError(
                f"start_phase ({self.start_phase}) must not exceed end_phase ({self.end_phase})"
            )
        return self

    def dataset_path(self, name: str) -> Path:
        return self.temp_dir / name

    @property
    def state_path(self) -> Path:
        return self.temp_dir / PIPELINE_STATE_FILE

    def fingerprint(self, phase: int = 4) -> str:
        """
        Stable hash of the settings that change what phases ``0..phase`` write.

        Worker count and phase controls are left out: they never change what
        a phase writes. The users file and K first matter in phase 3 and N
        only in phase 4, so changing them leaves earlier phases reusable.
        """
        parts = [
            str(Path(self.input_path).resolve()),
            str(self.boolean_data),
            str(self.num_splits),
        ]
        if phase >= 3:
            parts.append(str(Path(self.users_file).resolve()) if self.users_file else "")
            parts.append(str(self.max_prefs_per_user))
        if phase >= 4:
            parts.append(str(self.num_recommendations))
        return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


class RecommendedItem(BaseModel):
    """
    One recommended item with its aggregated score.
    """

    item_id: int
    score: float


class UserRecommendations(BaseModel):
    """
    Response body for GET /recommendations/{user_id}.
    """

    user_id: int
    recommended_items: List[RecommendedItem]


class HealthResponse(BaseModel):
    """
    Response body for GET /health.
    """

    status: str
    users: int = 0

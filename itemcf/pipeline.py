from __future__ import annotations

"""
Orchestrator for the five recommender phases.

Each phase reads its predecessors' persisted datasets and writes a complete
dataset of its own, so a run can start from any phase boundary:

0. itemIDIndex             preferences -> (ItemIndex, ItemID)
1. userVectors             preferences + index -> (UserID, UserVector)
2. cooccurrence            user vectors -> (ItemIndex, column)
3. partialMultiply         columns + pruned user vectors -> (ItemIndex, VectorAndPrefs)
4. aggregateAndRecommend   joined records -> recommendations text file

Any failure aborts the run with a PipelineError naming the phase; the phase
is never marked complete.
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from loguru import logger

from .aggregate import aggregate_recommendations
from .config import PipelineConfig
from .cooccurrence import build_cooccurrence
from .errors import PipelineError
from .item_index import build_item_index, index_to_item_id, item_id_to_index
from .join import join_columns_and_prefs
from .pipeline_types import Preference
from .preferences import read_preferences, read_user_ids
from .pruning import user_vector_splitter
from .state import PHASE_DATASETS, Phase, PipelineState
from .storage import read_dataset, write_dataset, write_recommendations
from .user_vectors import build_user_vectors


class RecommenderPipeline:
    def __init__(self, config: PipelineConfig, state: Optional[PipelineState] = None):
        self.config = config
        self.state = state if state is not None else PipelineState.load(self.config.state_path)
        self._preference_records: Optional[List[Tuple[int, Preference]]] = None
        self._handlers: Dict[Phase, Callable[[], None]] = {
            Phase.ITEM_ID_INDEX: self._run_item_id_index,
            Phase.USER_VECTORS: self._run_user_vectors,
            Phase.COOCCURRENCE: self._run_cooccurrence,
            Phase.PARTIAL_MULTIPLY: self._run_partial_multiply,
            Phase.AGGREGATE_AND_RECOMMEND: self._run_aggregate_and_recommend,
        }

    # -----------------------
    # Phase bookkeeping
    # -----------------------

    def output_path_for(self, phase: Phase) -> Path:
        if phase == Phase.AGGREGATE_AND_RECOMMEND:
            return self.config.output_path
        return self.config.dataset_path(PHASE_DATASETS[phase])

    def _should_skip(self, phase: Phase) -> bool:
        output_exists = self.output_path_for(phase).exists()
        if phase < self.config.start_phase:
            if not output_exists:
                raise PipelineError(
                    phase.label,
                    f"cannot start at phase {self.config.start_phase}: "
                    f"output {self.output_path_for(phase)} is missing",
                )
            logger.info("Skipping phase {} ({}): before start phase", int(phase), phase.label)
            return True
        fingerprint = self.config.fingerprint(phase)
        if self.config.resume and self.state.is_complete(phase, fingerprint) and output_exists:
            logger.info("Skipping phase {} ({}): already complete", int(phase), phase.label)
            return True
        return False

    def _save_state(self) -> None:
        self.state.save(self.config.state_path)

    def run_phase(self, phase: Phase) -> None:
        logger.info("Starting phase {} ({})", int(phase), phase.label)
        self.state.invalidate_from(phase)
        self._save_state()
        try:
            self._handlers[phase]()
        except PipelineError:
            raise
        except Exception as e:
            logger.error("Phase {} ({}) failed: {}", int(phase), phase.label, e)
            raise PipelineError(phase.label, f"{type(e).__name__}: {e}") from e
        self.state.mark_complete(phase, self.config.fingerprint(phase))
        self._save_state()
        logger.info("Completed phase {} ({})", int(phase), phase.label)

    def run(self) -> Path:
        for phase in Phase:
            if phase > self.config.end_phase:
                break
            if self._should_skip(phase):
                continue
            self.run_phase(phase)
        return self.config.output_path

    # -----------------------
    # Inputs shared between phases
    # -----------------------

    def _preferences(self) -> List[Tuple[int, Preference]]:
        if self._preference_records is None:
            prefs = read_preferences(self.config.input_path, boolean_data=self.config.boolean_data)
            self._preference_records = list(enumerate(prefs))
        return self._preference_records

    def _read(self, phase: Phase):
        return read_dataset(self.output_path_for(phase))

    def _write(self, phase: Phase, records) -> None:
        write_dataset(self.output_path_for(phase), records)

    # -----------------------
    # Phases
    # -----------------------

    def _run_item_id_index(self) -> None:
        table = build_item_index(
            self._preferences(),
            workers=self.config.workers,
            num_splits=self.config.num_splits,
        )
        self._write(Phase.ITEM_ID_INDEX, table)

    def _run_user_vectors(self) -> None:
        table = self._read(Phase.ITEM_ID_INDEX)
        vectors = build_user_vectors(
            self._preferences(),
            item_id_to_index(table),
            workers=self.config.workers,
            num_splits=self.config.num_splits,
        )
        self._write(Phase.USER_VECTORS, vectors)

    def _run_cooccurrence(self) -> None:
        columns = build_cooccurrence(
            self._read(Phase.USER_VECTORS),
            workers=self.config.workers,
            num_splits=self.config.num_splits,
        )
        self._write(Phase.COOCCURRENCE, columns)

    def _run_partial_multiply(self) -> None:
        splitter = user_vector_splitter(
            self.config.max_prefs_per_user,
            read_user_ids(self.config.users_file),
        )
        joined = join_columns_and_prefs(
            self._read(Phase.COOCCURRENCE),
            self._read(Phase.USER_VECTORS),
            splitter,
            workers=self.config.workers,
            num_splits=self.config.num_splits,
        )
        self._write(Phase.PARTIAL_MULTIPLY, joined)

    def _run_aggregate_and_recommend(self) -> None:
        table = self._read(Phase.ITEM_ID_INDEX)
        recommendations = aggregate_recommendations(
            self._read(Phase.PARTIAL_MULTIPLY),
            index_to_item_id(table),
            self.config.num_recommendations,
            workers=self.config.workers,
            num_splits=self.config.num_splits,
        )
        write_recommendations(self.config.output_path, recommendations)


def run_pipeline(config: PipelineConfig, state: Optional[PipelineState] = None) -> Path:
    """Run (or resume) the recommender and return the output path."""
    logger.info("Running recommender pipeline with config: {}", config.model_dump())
    return RecommenderPipeline(config, state).run()

"""
Prediction Pipeline

Orchestrates one prediction run:
1. Load the input snapshot (fatal on failure)
2. Validate the snapshot (reported, never fatal)
3. Create the run record
4. Run the four models against the same snapshot
5. Write each model's batch independently
6. Finalize the run with its prediction count and average confidence
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple
import uuid

import structlog

from bizintel.config import Settings, get_settings
from bizintel.database.models import RunStatus
from bizintel.ingestion.loader import DataLoader, DataSnapshot
from bizintel.ml import CashFlowPredictor, InventoryOptimizer, RiskScorer, SalesForecaster
from bizintel.pipeline.recorder import ModelKind, PredictionRecorder
from bizintel.quality.validators import ValidationResult, validate_snapshot

logger = structlog.get_logger(__name__)

CONFIDENCE_MODELS = (ModelKind.SALES, ModelKind.CASH_FLOW, ModelKind.INVENTORY)


class PipelineError(RuntimeError):
    """Raised when a run cannot start or ends unexpectedly"""


@dataclass
class ModelOutcome:
    """Result of running and persisting one model"""
    kind: ModelKind
    predictions: List[Any] = field(default_factory=list)
    written: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def records(self) -> List[Dict[str, Any]]:
        return [prediction.to_record() for prediction in self.predictions]


@dataclass
class PipelineResult:
    """Summary of one pipeline execution"""
    run_id: Optional[uuid.UUID]
    status: RunStatus
    outcomes: Dict[ModelKind, ModelOutcome]
    total_predictions: int
    avg_confidence: float
    started_at: datetime
    completed_at: datetime
    dry_run: bool = False
    quality: Dict[str, ValidationResult] = field(default_factory=dict)

    @property
    def errors(self) -> Dict[str, str]:
        return {
            kind.value: outcome.error
            for kind, outcome in self.outcomes.items()
            if outcome.error is not None
        }

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()


def overall_confidence(outcomes: Dict[ModelKind, ModelOutcome]) -> float:
    """
    Mean of all non-null confidence scores of the sales, cash-flow and
    inventory outputs. Risk scores carry no confidence and are excluded.
    """
    scores: List[float] = []
    for kind in CONFIDENCE_MODELS:
        outcome = outcomes.get(kind)
        if outcome is None:
            continue
        scores.extend(
            p.confidence_score for p in outcome.predictions if p.confidence_score is not None
        )
    if not scores:
        return 0.0
    return round(sum(scores) / len(scores), 2)


class PredictionPipeline:
    """
    Batch prediction pipeline.

    Example:
        pipeline = PredictionPipeline()
        result = await pipeline.run()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        loader: Optional[DataLoader] = None,
        recorder: Optional[PredictionRecorder] = None,
        reference_date: Optional[date] = None,
    ):
        self.settings = settings or get_settings()
        params = self.settings.prediction

        self.loader = loader or DataLoader(page_size=params.page_size)
        self.recorder = recorder or PredictionRecorder(chunk_size=params.insert_chunk_size)

        self.sales_forecaster = SalesForecaster(horizon_months=params.horizon_months)
        self.risk_scorer = RiskScorer(weights=params.risk_weights, reference_date=reference_date)
        self.cashflow_predictor = CashFlowPredictor(
            alpha=params.holt_alpha,
            beta=params.holt_beta,
            rate_alpha=params.ses_alpha,
            horizon_months=params.horizon_months,
        )
        self.inventory_optimizer = InventoryOptimizer(
            lead_time_days=params.lead_time_days,
            service_level_z=params.service_level_z,
        )

    @property
    def prediction_horizon(self) -> str:
        return f"{self.settings.prediction.horizon_months} months"

    def _model_steps(self, snapshot: DataSnapshot) -> Sequence[tuple]:
        return (
            (ModelKind.SALES, lambda: self.sales_forecaster.forecast(
                snapshot.transactions, snapshot.products)),
            (ModelKind.RISK, lambda: self.risk_scorer.score(
                snapshot.transactions, snapshot.customers)),
            (ModelKind.CASH_FLOW, lambda: self.cashflow_predictor.forecast(
                snapshot.transactions)),
            (ModelKind.INVENTORY, lambda: self.inventory_optimizer.optimize(
                snapshot.transactions, snapshot.products, snapshot.inventory)),
        )

    def run_models(self, snapshot: DataSnapshot) -> Dict[ModelKind, ModelOutcome]:
        """Run all four models; a model that raises is reported, not propagated"""
        outcomes: Dict[ModelKind, ModelOutcome] = {}

        for kind, compute in self._model_steps(snapshot):
            outcome = ModelOutcome(kind=kind)
            try:
                outcome.predictions = compute()
            except Exception as e:
                logger.error("Model failed", model=kind.value, error=str(e), error_type=type(e).__name__)
                outcome.error = f"compute: {e}"
            outcomes[kind] = outcome

        return outcomes

    @staticmethod
    def pending_writes(outcomes: Dict[ModelKind, ModelOutcome]) -> Iterator[ModelOutcome]:
        """Outcomes that computed successfully and have rows to persist"""
        for outcome in outcomes.values():
            if outcome.succeeded and outcome.predictions:
                yield outcome

    @staticmethod
    def write_failed(outcome: ModelOutcome, run_id: Any, error: Exception) -> None:
        logger.error(
            "Failed to write predictions",
            model=outcome.kind.value,
            run_id=str(run_id),
            error=str(error),
        )
        outcome.error = f"write: {error}"

    @staticmethod
    def summarize(
        outcomes: Dict[ModelKind, ModelOutcome],
    ) -> Tuple[RunStatus, int, List[str], float]:
        """
        Run-level status, persisted row count, error lines and confidence.

        A run fails only when every model step errored.
        """
        total = sum(o.written for o in outcomes.values())
        errors = [f"{o.kind.value} {o.error}" for o in outcomes.values() if o.error]
        status = RunStatus.FAILED if len(errors) == len(outcomes) else RunStatus.COMPLETED
        return status, total, errors, overall_confidence(outcomes)

    async def _persist(self, run_id: uuid.UUID, outcomes: Dict[ModelKind, ModelOutcome]) -> None:
        for outcome in self.pending_writes(outcomes):
            try:
                outcome.written = await self.recorder.write_batch(outcome.kind, outcome.records, run_id)
            except Exception as e:
                self.write_failed(outcome, run_id, e)

    async def load_snapshot(self) -> DataSnapshot:
        try:
            return await self.loader.load()
        except Exception as e:
            raise PipelineError(f"Failed to load prediction inputs: {e}") from e

    async def run(self, dry_run: bool = False) -> PipelineResult:
        """
        Execute one prediction run.

        Args:
            dry_run: Compute predictions without creating a run or writing rows

        Raises:
            PipelineError: If inputs cannot be loaded, the run cannot be recorded,
                or the run fails unexpectedly after it was created
        """
        started_at = datetime.utcnow()
        params = self.settings.prediction
        logger.info(
            "Starting prediction pipeline",
            model_version=params.model_version,
            horizon=self.prediction_horizon,
            dry_run=dry_run,
        )

        snapshot = await self.load_snapshot()
        quality = validate_snapshot(snapshot)

        if dry_run:
            outcomes = self.run_models(snapshot)
            total = sum(len(o.predictions) for o in outcomes.values())
            return self._result(
                None, RunStatus.COMPLETED, outcomes, total, started_at, quality, dry_run=True
            )

        try:
            run_id = await self.recorder.create_run(params.model_version, self.prediction_horizon)
        except Exception as e:
            raise PipelineError(f"Failed to create prediction run: {e}") from e

        structlog.contextvars.bind_contextvars(run_id=str(run_id))
        try:
            outcomes = self.run_models(snapshot)
            await self._persist(run_id, outcomes)

            status, total, errors, avg_confidence = self.summarize(outcomes)
            result = self._result(run_id, status, outcomes, total, started_at, quality)

            await self.recorder.finalize_run(
                run_id,
                status,
                total_predictions=total,
                avg_confidence=avg_confidence,
                error_message="; ".join(errors) or None,
            )
        except Exception as e:
            logger.error("Prediction pipeline failed", error=str(e))
            try:
                await self.recorder.finalize_run(run_id, RunStatus.FAILED, error_message=str(e))
            except Exception as finalize_error:
                logger.error("Failed to mark run as failed", error=str(finalize_error))
            raise PipelineError(f"Prediction run {run_id} failed: {e}") from e
        finally:
            structlog.contextvars.unbind_contextvars("run_id")

        logger.info(
            "Prediction pipeline complete",
            run_id=str(run_id),
            status=result.status.value,
            total_predictions=result.total_predictions,
            avg_confidence=result.avg_confidence,
            errors=result.errors or None,
            duration_seconds=round(result.duration_seconds, 2),
        )
        return result

    def _result(
        self,
        run_id: Optional[uuid.UUID],
        status: RunStatus,
        outcomes: Dict[ModelKind, ModelOutcome],
        total: int,
        started_at: datetime,
        quality: Dict[str, ValidationResult],
        dry_run: bool = False,
    ) -> PipelineResult:
        return PipelineResult(
            run_id=run_id,
            status=status,
            outcomes=outcomes,
            total_predictions=total,
            avg_confidence=overall_confidence(outcomes),
            started_at=started_at,
            completed_at=datetime.utcnow(),
            dry_run=dry_run,
            quality=quality,
        )

"""
Prefect Workflow Orchestration - Batch Predictions

Scheduled workflow for the prediction pipeline with:
- Retries at the database boundary
- Per-model failure isolation
- Snapshot quality checks
- Cron scheduling via serve()
"""

import uuid
from typing import Optional

from prefect import flow, task, get_run_logger

from bizintel.config import get_settings
from bizintel.database.connection import close_database, init_database
from bizintel.database.models import RunStatus
from bizintel.ingestion.loader import DataSnapshot
from bizintel.pipeline.recorder import ModelKind
from bizintel.pipeline.runner import PredictionPipeline
from bizintel.quality.validators import validate_snapshot

settings = get_settings()


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="load_snapshot",
    description="Fetch transactions, customers, products and inventory",
    retries=3,
    retry_delay_seconds=60,
)
async def load_snapshot(pipeline: PredictionPipeline) -> DataSnapshot:
    logger = get_run_logger()
    snapshot = await pipeline.load_snapshot()
    logger.info(f"Loaded snapshot: {snapshot.counts}")
    return snapshot


@task(
    name="validate_snapshot",
    description="Run data quality checks on the snapshot",
)
def check_snapshot(snapshot: DataSnapshot) -> dict:
    logger = get_run_logger()
    results = validate_snapshot(snapshot)

    summary = {
        name: {
            "status": result.status.value,
            "passed_checks": result.passed_checks,
            "total_checks": result.total_checks,
        }
        for name, result in results.items()
    }
    logger.info(f"Snapshot validation: {summary}")
    return summary


@task(
    name="create_run",
    description="Create the prediction run record",
    retries=3,
    retry_delay_seconds=30,
)
async def create_run(pipeline: PredictionPipeline) -> str:
    run_id = await pipeline.recorder.create_run(
        settings.prediction.model_version,
        pipeline.prediction_horizon,
    )
    return str(run_id)


@task(
    name="run_models",
    description="Run the four prediction models",
)
def run_models(pipeline: PredictionPipeline, snapshot: DataSnapshot) -> dict:
    logger = get_run_logger()
    outcomes = pipeline.run_models(snapshot)

    for kind, outcome in outcomes.items():
        if outcome.error:
            logger.warning(f"{kind.value} model failed: {outcome.error}")
        else:
            logger.info(f"{kind.value} model produced {len(outcome.predictions)} predictions")
    return outcomes


@task(
    name="write_predictions",
    description="Persist one model's prediction batch",
    retries=2,
    retry_delay_seconds=30,
)
async def write_predictions(pipeline: PredictionPipeline, kind: ModelKind, records: list, run_id: str) -> int:
    return await pipeline.recorder.write_batch(kind, records, uuid.UUID(run_id))


@task(
    name="finalize_run",
    description="Store the run summary",
    retries=3,
    retry_delay_seconds=30,
)
async def finalize_run(
    pipeline: PredictionPipeline,
    run_id: str,
    status: RunStatus,
    total_predictions: int,
    avg_confidence: float,
    error_message: Optional[str],
) -> None:
    await pipeline.recorder.finalize_run(
        uuid.UUID(run_id),
        status,
        total_predictions=total_predictions,
        avg_confidence=avg_confidence,
        error_message=error_message,
    )


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="batch_predictions",
    description="Daily batch predictions for sales, risk, cash flow and inventory",
)
async def batch_predictions(database_url: Optional[str] = None) -> dict:
    """
    Batch prediction pipeline.

    Steps:
    1. Load the input snapshot
    2. Validate snapshot quality
    3. Create the run record
    4. Run the four models
    5. Persist each model's batch independently
    6. Finalize the run
    """
    logger = get_run_logger()
    await init_database(database_url)

    try:
        pipeline = PredictionPipeline(settings=settings)

        snapshot = await load_snapshot(pipeline)
        quality = check_snapshot(snapshot)
        run_id = await create_run(pipeline)

        try:
            outcomes = run_models(pipeline, snapshot)

            for outcome in pipeline.pending_writes(outcomes):
                try:
                    outcome.written = await write_predictions(
                        pipeline, outcome.kind, outcome.records, run_id
                    )
                except Exception as e:
                    pipeline.write_failed(outcome, run_id, e)

            status, total, errors, avg_confidence = pipeline.summarize(outcomes)

            await finalize_run(
                pipeline, run_id, status, total, avg_confidence, "; ".join(errors) or None
            )
        except Exception as e:
            logger.error(f"Prediction flow failed: {e}")
            await finalize_run(pipeline, run_id, RunStatus.FAILED, 0, None, str(e))
            raise
    finally:
        await close_database()

    logger.info(
        f"Prediction run {run_id} {status.value}: "
        f"{total} predictions, avg confidence {avg_confidence}"
    )
    return {
        "run_id": run_id,
        "status": status.value,
        "total_predictions": total,
        "avg_confidence": avg_confidence,
        "errors": errors,
        "quality": quality,
    }


# =============================================================================
# DEPLOYMENT CONFIGURATION
# =============================================================================

if __name__ == "__main__":
    batch_predictions.serve(
        name="batch-predictions",
        cron=settings.prediction.schedule_cron,
    )

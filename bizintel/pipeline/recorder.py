"""
Prediction Run Recorder

Persists prediction runs and their append-only result batches.
Each batch is written in its own session so that a failure in one model's
write never rolls back another model's rows.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union
import uuid

import structlog
from sqlalchemy import insert, select, update

from bizintel.config import get_settings
from bizintel.database.connection import get_db
from bizintel.database.models import (
    Base,
    CashFlowForecast,
    CustomerRiskScore,
    InventoryForecast,
    PredictionRun,
    RunStatus,
    TransactionPrediction,
)

logger = structlog.get_logger(__name__)


class ModelKind(str, Enum):
    """The four prediction batches produced per run"""
    SALES = "sales"
    RISK = "risk"
    CASH_FLOW = "cash_flow"
    INVENTORY = "inventory"


PREDICTION_TABLES: Dict[ModelKind, Type[Base]] = {
    ModelKind.SALES: TransactionPrediction,
    ModelKind.RISK: CustomerRiskScore,
    ModelKind.CASH_FLOW: CashFlowForecast,
    ModelKind.INVENTORY: InventoryForecast,
}

UUID_COLUMNS = ("prediction_run_id", "product_id", "customer_id")


def _as_uuid(value: Union[str, uuid.UUID]) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


def _prepare_record(record: Dict[str, Any], run_id: uuid.UUID) -> Dict[str, Any]:
    """Tag a prediction row with its run and coerce id columns"""
    row = dict(record)
    row["prediction_run_id"] = run_id
    for column in UUID_COLUMNS:
        if row.get(column) is not None:
            row[column] = _as_uuid(row[column])
    return row


def _run_to_dict(run: PredictionRun) -> Dict[str, Any]:
    return {
        "run_id": run.run_id,
        "run_at": run.run_at,
        "model_version": run.model_version,
        "prediction_horizon": run.prediction_horizon,
        "status": run.status.value,
        "total_predictions": run.total_predictions,
        "avg_confidence": run.avg_confidence,
        "error_message": run.error_message,
        "completed_at": run.completed_at,
    }


class PredictionRecorder:
    """
    Writes and reads prediction runs.

    Example:
        recorder = PredictionRecorder()
        run_id = await recorder.create_run("v1.0.0", "3 months")
        await recorder.write_batch(ModelKind.SALES, records, run_id)
        await recorder.finalize_run(run_id, RunStatus.COMPLETED, total_predictions=42, avg_confidence=71.3)
    """

    def __init__(self, chunk_size: Optional[int] = None):
        self.chunk_size = chunk_size or get_settings().prediction.insert_chunk_size

    async def create_run(self, model_version: str, prediction_horizon: str) -> uuid.UUID:
        """Create a run record in the running state"""
        run = PredictionRun(
            run_id=uuid.uuid4(),
            run_at=datetime.utcnow(),
            model_version=model_version,
            prediction_horizon=prediction_horizon,
            status=RunStatus.RUNNING,
        )
        async with get_db() as db:
            db.add(run)

        logger.info("Prediction run created", run_id=str(run.run_id), model_version=model_version)
        return run.run_id

    async def write_batch(
        self,
        kind: ModelKind,
        records: List[Dict[str, Any]],
        run_id: uuid.UUID,
    ) -> int:
        """
        Insert one model's rows tagged with the run id.

        Returns:
            Number of rows written

        Raises:
            Any database error; the batch is rolled back as a whole
        """
        if not records:
            return 0

        model = PREDICTION_TABLES[kind]
        rows = [_prepare_record(record, run_id) for record in records]

        async with get_db() as db:
            for i in range(0, len(rows), self.chunk_size):
                chunk = rows[i:i + self.chunk_size]
                await db.execute(insert(model), chunk)

        logger.info(
            "Prediction batch written",
            model=kind.value,
            table=model.__tablename__,
            rows=len(rows),
            run_id=str(run_id),
        )
        return len(rows)

    async def finalize_run(
        self,
        run_id: uuid.UUID,
        status: RunStatus,
        total_predictions: int = 0,
        avg_confidence: Optional[float] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """Store the run summary and final status"""
        async with get_db() as db:
            await db.execute(
                update(PredictionRun)
                .where(PredictionRun.run_id == run_id)
                .values(
                    status=status,
                    total_predictions=total_predictions,
                    avg_confidence=avg_confidence,
                    error_message=error_message,
                    completed_at=datetime.utcnow(),
                )
            )

        logger.info(
            "Prediction run finalized",
            run_id=str(run_id),
            status=status.value,
            total_predictions=total_predictions,
            avg_confidence=avg_confidence,
        )

    async def get_run(self, run_id: uuid.UUID) -> Optional[Dict[str, Any]]:
        async with get_db() as db:
            run = await db.get(PredictionRun, run_id)
            return _run_to_dict(run) if run is not None else None

    async def get_latest_run(self) -> Optional[Dict[str, Any]]:
        """Most recent completed run, or None"""
        async with get_db() as db:
            result = await db.execute(
                select(PredictionRun)
                .where(PredictionRun.status == RunStatus.COMPLETED)
                .order_by(PredictionRun.run_at.desc())
                .limit(1)
            )
            run = result.scalar_one_or_none()
            return _run_to_dict(run) if run is not None else None

    async def get_run_predictions(self, run_id: uuid.UUID, kind: ModelKind) -> List[Dict[str, Any]]:
        """All rows of one model's batch for a run"""
        model = PREDICTION_TABLES[kind]
        columns = [column for column in model.__table__.columns if column.key != "id"]

        async with get_db() as db:
            result = await db.execute(
                select(*columns).where(model.prediction_run_id == run_id)
            )
            return [dict(row._mapping) for row in result]

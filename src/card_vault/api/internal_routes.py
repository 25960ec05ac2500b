"""Internal API routes for operators.

- GET /internal/v1/reconciliation/orphans: report inconsistent card states

The report is read-only. Repairing the listed entries is left to a separate
reconciliation process.
"""

import structlog
from fastapi import APIRouter, HTTPException, status

from card_vault.api.dependencies import Coordinator
from card_vault.api.models import OrphanReportResponse
from card_vault.domain.exceptions import CardVaultError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/internal/v1")


@router.get("/reconciliation/orphans", response_model=OrphanReportResponse)
def get_orphan_report(coordinator: Coordinator) -> OrphanReportResponse:
    """List secret entries left inconsistent by partial failures.

    Responses:
        200 OK: Report (``clean`` is true when nothing was found)
        500 Internal Server Error: Metadata or vault failure
    """
    try:
        report = coordinator.detect_orphans()
    except CardVaultError:
        logger.exception("orphan_scan_failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build orphan report",
        )

    return OrphanReportResponse(**report.to_dict(), clean=report.is_clean)

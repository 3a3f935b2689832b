import logging
from fastapi import APIRouter, Depends
from spire_online.common import get_current_user
from spire_online.core.rules_engine import (
    fallout_severity_for_total_stress,
    get_rules_config,
    stress_clear_amount_for_severity,
    total_stress_for_fallout,
)
from spire_online.schemas.rules import FalloutRequest, FalloutResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rules", tags=["rules"])


@router.post("/fallout", response_model=FalloutResponse, dependencies=[Depends(get_current_user)])
async def evaluate_fallout_api(request: FalloutRequest):
    """
    Work out the fallout a character would take at their current stress.

    Args:
        request: The character document and, optionally, its campaign document

    Returns:
        FalloutResponse: Total capped stress, severity, stress to clear and the rules in force
    """
    total = total_stress_for_fallout(request.pc)
    severity = fallout_severity_for_total_stress(total)
    return {
        "total": total,
        "severity": severity,
        "clearAmount": stress_clear_amount_for_severity(severity),
        "rules": get_rules_config(request.campaign),
    }

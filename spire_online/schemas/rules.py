from pydantic import BaseModel
from typing import Any, Dict, Optional
from enum import Enum as PyEnum

class FalloutSeverity(str, PyEnum):
    MINOR = "Minor"
    MODERATE = "Moderate"
    SEVERE = "Severe"

class RulesConfigResponse(BaseModel):
    difficultyDowngrades: bool
    falloutCheckOnStress: bool
    clearStressOnFallout: bool

class FalloutRequest(BaseModel):
    pc: Dict[str, Any]
    campaign: Optional[Dict[str, Any]] = None

class FalloutResponse(BaseModel):
    total: int
    severity: FalloutSeverity
    clearAmount: int
    rules: RulesConfigResponse

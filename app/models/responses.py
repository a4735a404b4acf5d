from pydantic import BaseModel, Field
from typing import Any, Optional, Dict, List

from app.models.domain_models import (
    AgentType, ImpactLevel, Intent, RiskCategory, Scenario, Verdict,
)


class IntentResult(BaseModel):
    intent: Intent
    confidence: float = Field(ge=0.0, le=1.0)
    entities: Dict[str, Any] = Field(default_factory=dict)
    reasoning: str = ""


class ScoreFactor(BaseModel):
    factor: str
    points: int


class Recommendation(BaseModel):
    action: str
    impact: int


class EligibilityResult(BaseModel):
    probability: int
    risk_category: RiskCategory
    verdict: Verdict
    emi: int
    dti: int
    surplus: int
    expense_ratio: float
    loan_to_income: float
    breakdown: List[ScoreFactor] = []
    risk_factors: List[str] = []
    recommendations: List[Recommendation] = []


class EmiQuote(BaseModel):
    principal: int
    annual_rate: float
    tenure_months: int
    emi: int
    total_payable: int
    total_interest: int


class ScenarioResult(BaseModel):
    scenario: Scenario
    survival_months: int
    impact_level: ImpactLevel
    affected_assets: List[str] = []
    recovery_months: int


class ResilienceResult(BaseModel):
    score: int
    risk_category: RiskCategory
    survival_months: int
    worst_scenario: Scenario
    emergency_months: float
    dti: float
    scenarios: List[ScenarioResult]
    risk_factors: List[str] = []
    strengths: List[str] = []
    recovery_plan: List[str] = []


class KnowledgeDoc(BaseModel):
    id: str
    title: str
    category: str
    content: str
    keywords: List[str] = []

    def ref(self) -> Dict[str, str]:
        return {"id": self.id, "title": self.title, "category": self.category}


class OrchestrationResult(BaseModel):
    response: str
    agent_type: AgentType
    metadata: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None

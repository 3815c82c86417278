from typing import Dict, List, Optional, Union

from pydantic import BaseModel


class RequisitionRecord(BaseModel):
    id: str
    timestamp: str
    email: str
    productName: str
    type: str
    deliveryTimeline: str
    assignedTeam: str
    pocEmail: str
    details: str
    requisitionBreakdown: str
    estimatedStartDate: str
    expectedDeliveryDate: str
    pocName: str
    status: str


class StatusUpdateRequest(BaseModel):
    id: Union[str, int]
    status: str
    expectedStatus: Optional[str] = None


class StatusUpdateResponse(BaseModel):
    message: str
    updated: bool
    id: str
    status: str


class RequisitionStats(BaseModel):
    total: int
    pending: int
    approved: int
    completed: int
    rejected: int
    percentages: Dict[str, int]
    teams: List[str]

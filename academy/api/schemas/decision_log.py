from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TargetPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[int, str]] = None
    name: Optional[str] = None


class DecisionLogPayload(BaseModel):
    """Decision reported by a route guard or an action check.

    Field names follow the camelCase payload sent by the dashboard; both
    ``accessGranted`` and ``hasPermission`` are accepted for the outcome.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    action: Optional[str] = None
    route: Optional[str] = None
    user_id: Optional[Union[int, str]] = Field(None, alias="userId")
    username: Optional[str] = None
    user_roles: Optional[List[str]] = Field(None, alias="userRoles")
    required_permissions: List[str] = Field(default_factory=list, alias="requiredPermissions")
    user_permissions: List[str] = Field(default_factory=list, alias="userPermissions")
    matching_permissions: List[str] = Field(default_factory=list, alias="matchingPermissions")
    is_super_admin: bool = Field(False, alias="isSuperAdmin")
    access_granted: Optional[bool] = Field(None, alias="accessGranted")
    has_permission: Optional[bool] = Field(None, alias="hasPermission")
    result: Optional[str] = None
    target: Optional[TargetPayload] = None
    additional_data: Optional[Dict[str, Any]] = Field(None, alias="additionalData")
    timestamp: Optional[datetime] = None

    @property
    def granted(self) -> bool:
        if self.result:
            return self.result.upper() == "GRANTED"
        if self.access_granted is not None:
            return self.access_granted
        return bool(self.has_permission)


class DecisionLogAck(BaseModel):
    success: bool


class DecisionLogEntryResponse(BaseModel):
    id: int
    kind: str
    action: str
    route: Optional[str]
    actor_id: Optional[str]
    username: Optional[str]
    required_permissions: List[str]
    user_permissions: List[str]
    matching_permissions: List[str]
    user_roles: Optional[List[str]]
    is_super_admin: bool
    result: str
    target: Optional[dict]
    details: Optional[dict]
    decided_at: Optional[datetime]
    received_at: datetime
    digest: str
    previous_digest: Optional[str]

    class Config:
        from_attributes = True


class DecisionLogListResponse(BaseModel):
    items: List[DecisionLogEntryResponse]
    total: int
    page: int
    per_page: int


class ChainVerificationResponse(BaseModel):
    ok: bool
    checked: int
    broken_at: Optional[int] = None

"""
Pydantic schemas for compliance results and API request/response models.

Field names follow the wire format the UI and the reasoning backend use
(camelCase); Python attributes are snake_case.
"""

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, StrictStr


class IndustryType(str, Enum):
    HEALTHCARE = "healthcare"
    CONSTRUCTION = "construction"


class IssueKind(str, Enum):
    MISSING = "missing"
    INCORRECT = "incorrect"
    PROHIBITED = "prohibited"


# ── Compliance result ──

class ComplianceIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: IssueKind = Field(
        validation_alias=AliasChoices("type", "kind"),
        serialization_alias="type",
    )
    item: StrictStr
    description: StrictStr


class ComplianceItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    item: StrictStr
    description: StrictStr


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: StrictStr
    description: StrictStr


class ComplianceResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_compliant: StrictBool = Field(alias="isCompliant")
    issues: list[ComplianceIssue]
    compliant_items: list[ComplianceItem] = Field(alias="compliantItems")
    recommendations: list[Recommendation]

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ── Check request ──

class CheckComplianceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    industry: str
    image_base64: str | None = Field(None, alias="imageBase64")
    reference_images_base64: list[str] | None = Field(None, alias="referenceImagesBase64")
    description: str | None = None


# ── Rules ──

class IndustryRulesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    required_items: list[str] = Field(alias="requiredItems")
    prohibited_items: list[str] = Field(alias="prohibitedItems")


# ── History ──

class ComplianceCheckRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int
    industry: str
    image_base64: str | None = Field(None, alias="imageBase64")
    description: str | None = None
    result: ComplianceResult
    timestamp: str


class ComplianceCheckListResponse(BaseModel):
    checks: list[ComplianceCheckRecord]
    total: int


# ── Operator settings ──

class SettingsView(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(alias="apiKey")
    has_credential: bool = Field(alias="hasCredential")
    use_fallback: bool = Field(alias="useFallback")


class SettingsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: StrictStr | None = Field(None, alias="apiKey")
    use_fallback: StrictBool | None = Field(None, alias="useFallback")


class MessageResponse(BaseModel):
    message: str

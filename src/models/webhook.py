"""
Webhook payload models.
"""
import json
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError


class JobAdderWebhookData(BaseModel):
    """`data` object of a JobAdder webhook; only the resource id is required."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str = Field(..., min_length=1)


class JobAdderWebhookMetadata(BaseModel):
    """`metadata` object; carries the tenant we registered the webhook for."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    tenant_id: str = Field(..., alias="tenantId", min_length=1)


class JobAdderWebhookPayload(BaseModel):
    """Full payload of a JobAdder webhook delivery."""
    model_config = ConfigDict(populate_by_name=True)

    event: str = Field(..., min_length=1)  # "job.created", "candidate.deleted", ...
    data: JobAdderWebhookData
    metadata: JobAdderWebhookMetadata
    timestamp: Optional[str] = None
    webhook_id: Optional[str] = Field(default=None, alias="webhookId")

    @property
    def tenant_id(self) -> str:
        return self.metadata.tenant_id

    @property
    def resource_id(self) -> str:
        return self.data.id


@dataclass
class PayloadValidation:
    """Tagged result of payload validation: exactly one of payload/error is set."""
    payload: Optional[JobAdderWebhookPayload] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.payload is not None


def parse_webhook_payload(raw_body: bytes) -> PayloadValidation:
    """Parse and validate a raw webhook body."""
    try:
        body: Any = json.loads(raw_body or b"")
    except (ValueError, UnicodeDecodeError) as e:
        return PayloadValidation(error=f"Invalid JSON payload: {e}")

    try:
        return PayloadValidation(payload=JobAdderWebhookPayload.model_validate(body))
    except PydanticValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        return PayloadValidation(error=f"Invalid webhook payload: {', '.join(fields) or 'body'}")

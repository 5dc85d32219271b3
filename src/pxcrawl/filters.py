"""Admission filters applied to candidate works."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

from dateutil.parser import isoparse
from pydantic import BaseModel, Field, model_validator

from pxcrawl.models import AdmissionAttributes, AIType, WorkMetadata, XRestrict

logger = logging.getLogger(__name__)


class FilterEngine(Protocol):
    async def check(self, attributes: AdmissionAttributes) -> bool: ...


class AcceptAll:
    """Filter that admits every candidate."""

    async def check(self, attributes: AdmissionAttributes) -> bool:
        return True


class FilterRules(BaseModel):
    """Admission rules. A rule is skipped when the attribute it needs is absent."""

    blocked_user_ids: set[str] = Field(default_factory=set)
    blocked_tags: set[str] = Field(default_factory=set)
    required_tags: set[str] = Field(default_factory=set)
    min_bookmarks: int = Field(default=0, ge=0)
    exclude_ai: bool = False
    allowed_restrictions: set[XRestrict] = Field(default_factory=lambda: set(XRestrict))
    min_width: int = Field(default=0, ge=0)
    min_height: int = Field(default=0, ge=0)
    created_after: datetime | None = None
    created_before: datetime | None = None
    stop_after: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def validate_date_window(self) -> "FilterRules":
        if self.created_after and self.created_before and self.created_after > self.created_before:
            raise ValueError("created_after must not be later than created_before")
        return self


class RuleFilter:
    """Filter engine driven by FilterRules.

    ``stop_after`` makes the filter stateful: once that many candidates have
    been admitted every later candidate is rejected, so candidates must be
    checked one at a time and in order.
    """

    def __init__(self, rules: FilterRules | None = None) -> None:
        self.rules = rules or FilterRules()
        self._accepted_ids: set[str] = set()

    @property
    def accepted(self) -> int:
        return len(self._accepted_ids)

    async def check(self, attributes: AdmissionAttributes) -> bool:
        reason = self._rejection_reason(attributes)
        if reason is not None:
            logger.debug("Rejected %s: %s", attributes.id, reason)
            return False
        self._accepted_ids.add(attributes.id)
        return True

    def _rejection_reason(self, attributes: AdmissionAttributes) -> str | None:
        rules = self.rules

        # A work checked again with fuller attributes doesn't count twice.
        limit_reached = rules.stop_after is not None and self.accepted >= rules.stop_after
        if limit_reached and attributes.id not in self._accepted_ids:
            return f"already accepted {rules.stop_after} works"

        if attributes.user_id is not None and attributes.user_id in rules.blocked_user_ids:
            return f"user {attributes.user_id} is blocked"

        if attributes.tags is not None:
            tags = set(attributes.tags)
            blocked = tags & rules.blocked_tags
            if blocked:
                return f"blocked tag {sorted(blocked)[0]}"
            missing = rules.required_tags - tags
            if missing:
                return f"missing tag {sorted(missing)[0]}"

        if attributes.bookmark_count is not None and attributes.bookmark_count < rules.min_bookmarks:
            return f"{attributes.bookmark_count} bookmarks is below {rules.min_bookmarks}"

        if rules.exclude_ai and attributes.ai_type == AIType.YES:
            return "AI-generated"

        if attributes.x_restrict is not None and attributes.x_restrict not in rules.allowed_restrictions:
            return f"restriction {attributes.x_restrict.name} is not allowed"

        # Zero dimensions mean "unknown" (multi-page works, thin discovery).
        if attributes.width and attributes.width < rules.min_width:
            return f"width {attributes.width} is below {rules.min_width}"
        if attributes.height and attributes.height < rules.min_height:
            return f"height {attributes.height} is below {rules.min_height}"

        if attributes.create_date is not None:
            created = attributes.create_date
            if rules.created_after and _comparable(created, rules.created_after) < rules.created_after:
                return "created before the date window"
            if rules.created_before and _comparable(created, rules.created_before) > rules.created_before:
                return "created after the date window"

        return None


def _to_datetime(raw_timestamp: str | None) -> datetime | None:
    if not raw_timestamp:
        return None
    try:
        return isoparse(raw_timestamp)
    except ValueError:
        return None


def _comparable(value: datetime, reference: datetime) -> datetime:
    if (value.tzinfo is None) != (reference.tzinfo is None):
        return value.replace(tzinfo=reference.tzinfo)
    return value


def build_admission_attributes(
    metadata: WorkMetadata,
    tags_with_transl: list[str],
    ai_type: AIType,
) -> AdmissionAttributes:
    """Build the filter input for a fully fetched work."""

    single_page = metadata.page_count == 1
    return AdmissionAttributes(
        id=metadata.id,
        kind=metadata.kind,
        ai_type=ai_type,
        create_date=_to_datetime(metadata.create_date),
        tags=tags_with_transl,
        page_count=metadata.page_count,
        bookmark_count=metadata.bookmark_count,
        bookmark_data=metadata.bookmark_data,
        width=metadata.width if single_page else 0,
        height=metadata.height if single_page else 0,
        mini=metadata.urls.mini if single_page else None,
        user_id=metadata.user_id,
        x_restrict=metadata.x_restrict,
    )

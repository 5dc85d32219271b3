from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from pxcrawl.filters import AcceptAll, FilterRules, RuleFilter, build_admission_attributes
from pxcrawl.models import AdmissionAttributes, AIType, XRestrict


def test_build_admission_attributes_for_single_page_work(make_metadata) -> None:
    attributes = build_admission_attributes(make_metadata(), ["風景", "landscape"], AIType.NO)

    assert attributes.id == "1001"
    assert attributes.width == 1200
    assert attributes.height == 800
    assert attributes.mini is not None
    assert attributes.tags == ["風景", "landscape"]
    assert attributes.create_date == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert attributes.user_id == "42"


def test_build_admission_attributes_withholds_geometry_for_multi_page_work(make_metadata) -> None:
    attributes = build_admission_attributes(make_metadata(pageCount=4), [], AIType.NO)

    assert attributes.page_count == 4
    assert attributes.width == 0
    assert attributes.height == 0
    assert attributes.mini is None


@pytest.mark.asyncio
async def test_accept_all() -> None:
    assert await AcceptAll().check(AdmissionAttributes(id="1"))


@pytest.mark.asyncio
async def test_rule_filter_skips_rules_for_absent_attributes() -> None:
    engine = RuleFilter(FilterRules(min_bookmarks=100, required_tags={"cat"}, min_width=2000, exclude_ai=True))

    assert await engine.check(AdmissionAttributes(id="1"))


@pytest.mark.asyncio
async def test_rule_filter_applies_rules() -> None:
    engine = RuleFilter(
        FilterRules(
            blocked_user_ids={"13"},
            blocked_tags={"gore"},
            min_bookmarks=5,
            exclude_ai=True,
            allowed_restrictions={XRestrict.GENERAL},
            min_width=1000,
        )
    )

    assert not await engine.check(AdmissionAttributes(id="1", user_id="13"))
    assert not await engine.check(AdmissionAttributes(id="2", tags=["cat", "gore"]))
    assert not await engine.check(AdmissionAttributes(id="3", bookmark_count=4))
    assert not await engine.check(AdmissionAttributes(id="4", ai_type=AIType.YES))
    assert not await engine.check(AdmissionAttributes(id="5", x_restrict=XRestrict.R18))
    assert not await engine.check(AdmissionAttributes(id="6", width=800, height=600))
    assert await engine.check(AdmissionAttributes(id="7", width=0, height=0, bookmark_count=5, tags=["cat"]))


@pytest.mark.asyncio
async def test_rule_filter_date_window_accepts_naive_and_aware_dates() -> None:
    engine = RuleFilter(FilterRules(created_after=datetime(2024, 1, 1)))

    assert await engine.check(AdmissionAttributes(id="1", create_date=datetime(2024, 6, 1, tzinfo=timezone.utc)))
    assert not await engine.check(AdmissionAttributes(id="2", create_date=datetime(2023, 6, 1)))


@pytest.mark.asyncio
async def test_rule_filter_stop_after_counts_each_work_once() -> None:
    engine = RuleFilter(FilterRules(stop_after=2))

    assert await engine.check(AdmissionAttributes(id="1"))
    assert await engine.check(AdmissionAttributes(id="2"))
    assert not await engine.check(AdmissionAttributes(id="3"))
    assert await engine.check(AdmissionAttributes(id="1", bookmark_count=3))
    assert engine.accepted == 2


def test_filter_rules_validate_date_window() -> None:
    with pytest.raises(ValidationError):
        FilterRules(created_after=datetime(2024, 2, 1), created_before=datetime(2024, 1, 1))

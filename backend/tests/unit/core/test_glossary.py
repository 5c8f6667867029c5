import uuid
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models.glossary import GlossaryRuleType
from app.modules.translation.core.glossary import DatabaseGlossaryProvider, GlossaryPreprocessor
from app.schemas.glossary import GlossaryRuleData
from tests.factories import GlossaryRuleFactory, ShopFactory


def _custom(term: str, translation: str, case_sensitive: bool = False) -> GlossaryRuleData:
    return GlossaryRuleData(
        term=term,
        translation=translation,
        rule=GlossaryRuleType.CUSTOM_TRANSLATION,
        case_sensitive=case_sensitive,
    )


def test_custom_translation_replaces_every_occurrence_case_insensitively() -> None:
    text = "Widget of the year: the widget everyone wants. WIDGET!"
    result = GlossaryPreprocessor.apply(text, [_custom("widget", "Gadget")])
    assert result == "Gadget of the year: the Gadget everyone wants. Gadget!"


def test_case_sensitive_rule_only_matches_exact_case() -> None:
    text = "Apple sells apple pie."
    result = GlossaryPreprocessor.apply(text, [_custom("Apple", "Pomme", case_sensitive=True)])
    assert result == "Pomme sells apple pie."


def test_term_is_matched_literally() -> None:
    text = "Price: 10.00 (approx.) or 10x00"
    result = GlossaryPreprocessor.apply(text, [_custom("10.00 (approx.)", "ten")])
    assert result == "Price: ten or 10x00"


def test_replacement_is_inserted_verbatim() -> None:
    result = GlossaryPreprocessor.apply("Use the Pro plan", [_custom("Pro", r"\1 \g<0> $1")])
    assert result == r"Use the \1 \g<0> $1 plan"


def test_rules_apply_in_order_and_see_previous_output() -> None:
    rules = [_custom("cat", "dog"), _custom("dog", "wolf")]
    assert GlossaryPreprocessor.apply("cat and dog", rules) == "wolf and wolf"


def test_do_not_translate_rule_leaves_text_unchanged() -> None:
    rule = GlossaryRuleData(term="Acme", rule=GlossaryRuleType.DO_NOT_TRANSLATE)
    assert GlossaryPreprocessor.apply("Acme Rocket Boots", [rule]) == "Acme Rocket Boots"


def test_no_rules_returns_text_unchanged() -> None:
    assert GlossaryPreprocessor.apply("<p>Hello</p>", []) == "<p>Hello</p>"


@pytest.mark.asyncio
async def test_database_provider_returns_active_rules_in_creation_order(
    db_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    shop = ShopFactory.add_to(db_session)
    other_shop = ShopFactory.add_to(db_session)
    base_time = datetime(2024, 1, 1, tzinfo=UTC)
    GlossaryRuleFactory.add_to(
        db_session, shop_id=shop.id, term="second", created_at=base_time + timedelta(minutes=1)
    )
    GlossaryRuleFactory.add_to(db_session, shop_id=shop.id, term="first", created_at=base_time)
    GlossaryRuleFactory.add_to(db_session, shop_id=shop.id, term="inactive", is_active=False)
    GlossaryRuleFactory.add_to(db_session, shop_id=other_shop.id, term="foreign")
    await db_session.commit()

    provider = DatabaseGlossaryProvider(session_factory)
    rules = await provider.get_active_rules(shop.id)

    assert [rule.term for rule in rules] == ["first", "second"]
    assert all(isinstance(rule, GlossaryRuleData) for rule in rules)


@pytest.mark.asyncio
async def test_database_provider_unknown_shop_has_no_rules(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    provider = DatabaseGlossaryProvider(session_factory)
    assert await provider.get_active_rules(uuid.uuid4()) == []

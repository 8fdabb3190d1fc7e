"""Unit tests for the alembic revision history."""

from pathlib import Path

import pytest
from alembic.config import Config
from alembic.script import ScriptDirectory

from storefront.db.models import Base

ROOT = Path(__file__).resolve().parents[3]


@pytest.fixture
def scripts() -> ScriptDirectory:
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "alembic"))
    return ScriptDirectory.from_config(config)


def test_single_linear_history(scripts):
    assert scripts.get_heads() == ["006"]

    chain = [rev.revision for rev in scripts.walk_revisions("base", "heads")]

    assert chain == ["006", "005", "004", "003", "002", "001"]


def test_every_revision_can_downgrade(scripts):
    for rev in scripts.walk_revisions("base", "heads"):
        assert callable(getattr(rev.module, "downgrade", None)), rev.revision


def test_models_cover_migrated_tables():
    assert set(Base.metadata.tables) == {
        "users",
        "categories",
        "products",
        "product_images",
        "product_features",
        "product_sizes",
        "shipping_rules",
        "product_ratings",
        "product_comments",
        "buy_now_sessions",
        "orders",
        "order_items",
    }

# backend/app/db/base.py

# Import all SQLAlchemy models defined in the application.
# Alembic's env.py imports Base from here so autogenerate sees every table.
# When you add a new model, import it here.
from app.db.base_class import Base  # noqa: F401
from app.db.models.glossary import GlossaryRule  # noqa: F401
from app.db.models.language import Language  # noqa: F401
from app.db.models.resource import Resource, ResourceField  # noqa: F401
from app.db.models.shop import Shop  # noqa: F401
from app.db.models.token_wallet import TokenTransaction, TokenWallet  # noqa: F401
from app.db.models.translation import Translation  # noqa: F401
from app.db.models.translation_job import TranslationJob  # noqa: F401

# backend/app/schemas/glossary.py
from pydantic import BaseModel, ConfigDict

from app.db.models.glossary import GlossaryRuleType


# Detached snapshot of a rule, taken once per job run
class GlossaryRuleData(BaseModel):
    term: str
    translation: str | None = None
    rule: GlossaryRuleType
    case_sensitive: bool = False

    model_config = ConfigDict(from_attributes=True, frozen=True)

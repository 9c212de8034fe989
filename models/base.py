"""Gemeinsame Pydantic-Basis: camelCase im JSON, snake_case in Python."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DashboardModel(BaseModel):
    """Basisklasse aller Datenmodell-Klassen.

    JSON-Schlüssel bleiben im camelCase-Format der Exportdateien
    (``subjectId``, ``updatedAt`` ...), Attribute heißen snake_case.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

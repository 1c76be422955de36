"""
Strukturpruefung fuer die JSON-Ausgabe des Extraktions-Agenten.

Erwartet wird ein Array von Eintraegen der Form::

    {"url": "...", "isEhrung": true, "persons": [{"name": "...", "gender": "female", "honor": "..."}]}

Die Pruefung bricht beim ersten Fehler ab und meldet ihn als Unterklasse von
`SchemaValidationError`, damit Aufrufer den Grund unterscheiden koennen.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

VALID_GENDERS = ("male", "female")


class SchemaValidationError(ValueError):
    """Agenten-Ausgabe entspricht nicht dem geforderten Schema."""


class NotAnArrayError(SchemaValidationError):
    pass


class MissingUrlsError(SchemaValidationError):
    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            f"{len(missing)} erwartete URL(s) fehlen in der Ausgabe, z. B. '{missing[0]}'"
        )


class InvalidUrlError(SchemaValidationError):
    pass


class InvalidFlagError(SchemaValidationError):
    pass


class InvalidPersonsError(SchemaValidationError):
    pass


class InvalidNameError(SchemaValidationError):
    pass


class InvalidGenderError(SchemaValidationError):
    pass


class InvalidHonorError(SchemaValidationError):
    pass


def _is_filled_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _check_coverage(records: list, expected_urls: Iterable[str]) -> None:
    seen = {
        record["url"] for record in records if isinstance(record, dict) and isinstance(record.get("url"), str)
    }
    missing = [url for url in expected_urls if url not in seen]
    if missing:
        raise MissingUrlsError(missing)


def _check_person(person: Any, i: int, j: int) -> None:
    if not isinstance(person, dict) or not _is_filled_string(person.get("name")):
        raise InvalidNameError(f"Eintrag {i}, Person {j}: 'name' fehlt oder ist leer")
    gender = person.get("gender")
    if not isinstance(gender, str) or gender not in VALID_GENDERS:
        raise InvalidGenderError(f"Eintrag {i}, Person {j}: 'gender' muss exakt \"male\" oder \"female\" sein")
    if not _is_filled_string(person.get("honor")):
        raise InvalidHonorError(f"Eintrag {i}, Person {j}: 'honor' fehlt oder ist leer")


def validate_records(value: Any, expected_urls: Optional[Iterable[str]] = None) -> None:
    """
    Prueft `value` gegen das Ergebnis-Schema.

    Args:
        value: bereits geparstes JSON.
        expected_urls: optionale URL-Menge, die vollstaendig abgedeckt sein muss.

    Raises:
        SchemaValidationError: erster gefundener Verstoss.
    """
    if not isinstance(value, list):
        raise NotAnArrayError("Wurzelelement muss ein Array sein")
    if expected_urls is not None:
        _check_coverage(value, expected_urls)
    for i, record in enumerate(value):
        if not isinstance(record, dict) or not isinstance(record.get("url"), str):
            raise InvalidUrlError(f"Eintrag {i}: 'url' fehlt oder ist kein String")
        if not isinstance(record.get("isEhrung"), bool):
            raise InvalidFlagError(f"Eintrag {i}: 'isEhrung' fehlt oder ist nicht true/false")
        persons = record.get("persons")
        if not isinstance(persons, list):
            raise InvalidPersonsError(f"Eintrag {i}: 'persons' fehlt oder ist kein Array")
        for j, person in enumerate(persons):
            _check_person(person, i, j)


def check_records(value: Any, expected_urls: Optional[Iterable[str]] = None) -> Optional[str]:
    try:
        validate_records(value, expected_urls)
    except SchemaValidationError as exc:
        return str(exc)
    return None


__all__ = [
    "InvalidFlagError",
    "InvalidGenderError",
    "InvalidHonorError",
    "InvalidNameError",
    "InvalidPersonsError",
    "InvalidUrlError",
    "MissingUrlsError",
    "NotAnArrayError",
    "SchemaValidationError",
    "VALID_GENDERS",
    "check_records",
    "validate_records",
]

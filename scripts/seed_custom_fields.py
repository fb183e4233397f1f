"""Create custom field definitions from a YAML file.

The file holds either a list of definitions or a mapping with a
``definitions`` key. Each entry uses the same keys as the create API::

    - entity_type: contract
      name: riskTier
      label: Risk tier
      field_type: select_single_dropdown
      select_options: [low, medium, high]
      is_required: true

Definitions whose ``(entity_type, name)`` already exists are reported and
skipped; existing definitions are never modified.
"""
import argparse
import logging
from pathlib import Path
import yaml
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.schemas import CustomFieldDefinitionCreate
from app.services.custom_field_definitions import create_definition, definitions_by_name
from app.services.custom_field_errors import CustomFieldError, DuplicateNameError

logger = logging.getLogger(__name__)


def load_definitions(path: Path) -> list[CustomFieldDefinitionCreate]:
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or []
    except yaml.YAMLError as exc:
        raise ValueError(f"Unable to parse {path}: {exc}") from exc

    if isinstance(payload, dict):
        payload = payload.get("definitions") or []
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a list of custom field definitions")

    definitions = []
    for index, entry in enumerate(payload, start=1):
        try:
            definitions.append(CustomFieldDefinitionCreate.model_validate(entry))
        except ValidationError as exc:
            raise ValueError(f"Definition #{index} in {path} is invalid: {exc}") from exc
    return definitions


def seed_definitions(
    session: Session,
    definitions: list[CustomFieldDefinitionCreate],
    actor: str | None = None,
) -> dict[str, list[str]]:
    summary: dict[str, list[str]] = {"created": [], "skipped": []}
    existing: dict[str, set[str]] = {}

    for payload in definitions:
        entity_type = payload.entity_type.value
        if entity_type not in existing:
            existing[entity_type] = set(definitions_by_name(session, entity_type, include_inactive=True))
        key = f"{entity_type}.{payload.name}"
        if payload.name in existing[entity_type]:
            summary["skipped"].append(key)
            continue
        try:
            create_definition(session, payload, actor=actor)
        except DuplicateNameError:
            summary["skipped"].append(key)
            continue
        existing[entity_type].add(payload.name)
        summary["created"].append(key)
    return summary


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed custom field definitions from a YAML file.")
    parser.add_argument("--file", required=True, type=Path, help="Path to the YAML definitions file")
    parser.add_argument("--actor", default="seed", help="Identity recorded as creator of new definitions")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    definitions = load_definitions(args.file)

    with SessionLocal() as session:
        try:
            summary = seed_definitions(session, definitions, actor=args.actor)
        except CustomFieldError as exc:
            print(f"Failed to seed custom fields: {exc}")
            return 1

    for key in summary["created"]:
        print(f"Created custom field {key}")
    for key in summary["skipped"]:
        print(f"Custom field already exists, skipped: {key}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""Package fuer Bausteine der Ehrungen-Pipeline (Scraper, Agent, Validierung, Berichte)."""

from .checkpoint import CheckpointStore, checkpoint_path_for, write_json_atomic  # noqa: F401
from .schema_validator import SchemaValidationError, check_records, validate_records  # noqa: F401

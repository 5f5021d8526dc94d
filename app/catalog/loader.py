"""YAML domain catalog loader with integrity hashing."""

import hashlib
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from app.catalog.models import DomainCatalog
from app.core.config import settings

logger = logging.getLogger(__name__)

CATALOGS_DIR = Path(__file__).parent / "definitions"


def compute_catalog_hash(content: str) -> str:
    """Compute SHA256 hash of raw catalog content.

    Stored alongside assessments so a result can be traced back to the
    exact catalog revision it was scored against.
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def load_catalog_definition(
    filename: str,
    catalogs_dir: Path | None = None,
) -> tuple[dict[str, Any], str]:
    """Load a catalog YAML file and compute its hash.

    Raises:
        FileNotFoundError: If the catalog file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    if catalogs_dir is None:
        catalogs_dir = CATALOGS_DIR

    filepath = catalogs_dir / filename

    if not filepath.exists():
        raise FileNotFoundError(f"Catalog not found: {filepath}")

    content = filepath.read_text(encoding="utf-8")
    return yaml.safe_load(content), compute_catalog_hash(content)


def load_catalog(filename: str, catalogs_dir: Path | None = None) -> DomainCatalog:
    """Load and validate a domain catalog."""
    definition, content_hash = load_catalog_definition(filename, catalogs_dir)
    catalog = DomainCatalog.from_dict(definition, content_hash=content_hash)
    logger.info(
        f"Loaded catalog {catalog.id} v{catalog.version} "
        f"({len(catalog.domains)} domains, {catalog.step_count} steps)"
    )
    return catalog


def list_catalogs(catalogs_dir: Path | None = None) -> list[str]:
    """List available catalog definition files."""
    directory = catalogs_dir or CATALOGS_DIR
    return sorted(p.name for p in directory.glob("*.yaml"))


@lru_cache
def get_catalog() -> DomainCatalog:
    """Process-wide catalog, loaded once from the configured file."""
    return load_catalog(settings.catalog_filename)

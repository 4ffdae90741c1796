"""
Rule set loading.

Rules are read from a declarative JSON document. When no path is given
the bundled default_rules.json is used.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from inspector.app.schemas.rules import RuleSet

logger = logging.getLogger(__name__)


DEFAULT_RULES_PATH = Path(__file__).parent / "default_rules.json"


class RuleSetLoadError(RuntimeError):
    """Raised when a rule file cannot be read or does not validate."""


def load_rule_set(path: Optional[Path] = None) -> RuleSet:
    """Load and validate a RuleSet from JSON."""
    rules_path = Path(path) if path is not None else DEFAULT_RULES_PATH

    try:
        raw = rules_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuleSetLoadError(
            f"Rule file could not be read: {rules_path}"
        ) from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RuleSetLoadError(
            f"Rule file is not valid JSON: {rules_path} ({exc.msg})"
        ) from exc

    try:
        rules = RuleSet.model_validate(data)
    except ValidationError as exc:
        raise RuleSetLoadError(
            f"Rule file failed validation: {rules_path}\n{exc}"
        ) from exc

    logger.info(
        "rule_set_loaded",
        extra={
            "path": str(rules_path),
            "required_bidders": len(rules.required_bidders),
            "required_ads_txt_entries": len(rules.required_authorization_domains),
        },
    )
    return rules


__all__ = ["DEFAULT_RULES_PATH", "RuleSetLoadError", "load_rule_set"]

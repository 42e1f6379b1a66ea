"""
Template file loading.

A template describes a batch of changes to apply to one site:

{
  "site": "example.com",
  "whitelistIPs": ["200.0.0.1"],
  "whitelistSubnets": ["200.0.0.0/30"],
  "whitelistPaths": {"/wp-admin": "begins_with"},
  "settings": {"security_level": "high"}
}
"""
import json
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from .models import Template
from .utils import setup_logging

logger = setup_logging("template")


class TemplateError(Exception):
    """Exception raised when a template cannot be loaded."""
    pass


def load_template(path: Union[str, Path]) -> Template:
    """
    Read and validate a template file.

    Args:
        path: Path to the JSON template

    Returns:
        Parsed Template

    Raises:
        TemplateError: If the file is missing, not JSON, or fails validation
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise TemplateError(f"Check the template file if it exists: {path}")
    except OSError as e:
        raise TemplateError(f"Failed to read template file {path}: {e}")
    except json.JSONDecodeError as e:
        raise TemplateError(
            "Unable to parse template file, please check the content and "
            f"refer to the documentation.\n{e}"
        )

    if not isinstance(data, dict):
        raise TemplateError("Unable to parse template file: expected a JSON object")

    try:
        template = Template.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Template validation failed: errors={e.errors()}")
        raise TemplateError(
            "Unable to parse template file, please check the content and "
            f"refer to the documentation.\n{e}"
        )

    logger.info(f"Loaded template: {path}")
    return template

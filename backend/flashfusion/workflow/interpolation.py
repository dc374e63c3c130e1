# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Template interpolation for node configs.

``{{name}}`` is replaced by ``context[name]``. Unresolved placeholders are
left as literal text unless ``strict`` is set, in which case
InterpolationError is raised listing every missing name.
"""

import json
import logging
import re
from typing import Any, Mapping

from .exceptions import InterpolationError

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


def format_value(value: Any) -> str:
    """Render a context value for embedding in text"""
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def interpolate(template: str, context: Mapping[str, Any], strict: bool = False) -> str:
    """
    Replace ``{{name}}`` placeholders with values from context.

    Examples:
        >>> interpolate("Hello {{name}}", {"name": "Ada"})
        'Hello Ada'
        >>> interpolate("Hello {{who}}", {})
        'Hello {{who}}'
    """
    if not template:
        return template or ""

    missing = []

    def replace_ref(match):
        key = match.group(1)
        if key in context:
            return format_value(context[key])
        missing.append(key)
        return match.group(0)

    result = PLACEHOLDER_PATTERN.sub(replace_ref, template)

    if missing:
        if strict:
            raise InterpolationError(missing)
        logger.debug(f"Unresolved template variables left as text: {missing}")

    return result

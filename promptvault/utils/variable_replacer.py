"""
Placeholder substitution for management prompt contents.

Placeholders have the form ``{{name}}`` where ``name`` consists of word
characters only. Values come from a group's ``global_variables``.
"""

import json
import re
from typing import List, Mapping, Optional, Union

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")

VariablesSource = Union[str, Mapping[str, str], None]


def replace_variables(content: str, variables: VariablesSource = None) -> str:
    """
    Replace ``{{name}}`` tokens with values from ``variables``.

    Args:
        content: Text that may contain placeholders
        variables: Mapping or JSON object string. An unparsable string returns
            ``content`` unchanged.

    Returns:
        Content with known placeholders replaced. Unknown placeholders are left
        as they are and substituted values are not expanded again.
    """
    if not variables:
        return content

    if isinstance(variables, str):
        try:
            parsed = json.loads(variables)
        except ValueError:
            return content
        resolved: Mapping[str, str] = parsed if isinstance(parsed, dict) else {}
    else:
        resolved = variables

    def substitute(match: re.Match) -> str:
        name = match.group(1)
        if name in resolved:
            return str(resolved[name])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(substitute, content)


def extract_placeholders(content: Optional[str]) -> List[str]:
    """Placeholder names in order of appearance, duplicates included."""
    if not content:
        return []
    return PLACEHOLDER_PATTERN.findall(content)

"""Ordered text-transform rules applied to translator-supplied strings."""
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Pattern, Union

Replacement = Union[str, Callable[[re.Match], str]]

NAMED_PLACEHOLDER_REGEX = re.compile(r'\{([a-zA-Z_][a-zA-Z0-9_]*)\}')
NUMERIC_PLACEHOLDER_REGEX = re.compile(r'\{(\d+)\}')


@dataclass
class PlaceholderRule:
    """A single substitution. ``pattern`` may be a string or a compiled regex."""
    pattern: Union[str, Pattern[str]]
    replacement: Replacement
    description: str = ''

    def compiled(self) -> Pattern[str]:
        if isinstance(self.pattern, str):
            return re.compile(self.pattern)
        return self.pattern


@dataclass
class ProcessedText:
    text: str
    warnings: List[str] = field(default_factory=list)
    has_named_placeholder: bool = False


def percent_index_replacer(match: re.Match) -> str:
    """``%AA`` -> ``{0}``, ``%BB`` -> ``{1}``: index is the first letter's offset from 'A'."""
    letters = match.group(1)
    return f"{{{ord(letters[0]) - ord('A')}}}"


BUILTIN_REPLACERS: Dict[str, PlaceholderRule] = {
    'percent_index': PlaceholderRule(
        pattern=re.compile(r'%([A-Z]{2})'),
        replacement=percent_index_replacer,
        description='CSV placeholder conversion: %AA -> {0}',
    ),
    'escape_at': PlaceholderRule(
        pattern=re.compile(r'@'),
        replacement="{'@'}",
        description="Literal escape: @ -> {'@'}",
    ),
    'escape_hash': PlaceholderRule(
        pattern=re.compile(r'#'),
        replacement="{'#'}",
        description="Literal escape: # -> {'#'}",
    ),
}

DEFAULT_PLACEHOLDER_RULES: List[PlaceholderRule] = [
    BUILTIN_REPLACERS['percent_index'],
    BUILTIN_REPLACERS['escape_at'],
    BUILTIN_REPLACERS['escape_hash'],
]


def rules_from_config(raw_rules: List[Dict[str, str]]) -> List[PlaceholderRule]:
    """
    Build rules from configuration entries.

    Each entry is either ``{"builtin": name}`` or
    ``{"pattern": regex, "replacement": template, "description": text}``.
    The replacement is a ``re.sub`` template, so backslashes must be escaped.

    Raises:
        ValueError: If an entry names an unknown builtin, lacks a pattern,
            or its pattern does not compile.
    """
    rules: List[PlaceholderRule] = []
    for entry in raw_rules:
        builtin = entry.get('builtin')
        if builtin:
            if builtin not in BUILTIN_REPLACERS:
                raise ValueError(
                    f"Unknown builtin placeholder rule '{builtin}'. "
                    f"Available: {', '.join(sorted(BUILTIN_REPLACERS))}"
                )
            rules.append(BUILTIN_REPLACERS[builtin])
            continue

        pattern = entry.get('pattern')
        if not pattern:
            raise ValueError(f"Placeholder rule {entry!r} has no 'pattern'.")
        try:
            compiled = re.compile(pattern)
        except re.error as e:
            raise ValueError(f"Invalid placeholder rule pattern '{pattern}': {e}") from e
        rules.append(PlaceholderRule(
            pattern=compiled,
            replacement=entry.get('replacement', ''),
            description=entry.get('description', ''),
        ))
    return rules


class PlaceholderProcessor:
    """Applies the rule list in order and inspects the interpolation tokens of the result."""

    def __init__(self, rules: List[PlaceholderRule]):
        self.rules = list(rules)
        self._compiled = [(rule.compiled(), rule.replacement) for rule in self.rules]

    def process(self, text: str) -> ProcessedText:
        if not text:
            return ProcessedText(text='')

        processed = text
        # Later rules see the output of earlier ones.
        for pattern, replacement in self._compiled:
            processed = pattern.sub(replacement, processed)

        named = self.detect_named_placeholders(processed)
        warnings = []
        if named:
            warnings.append(
                f"Contains named placeholders: {', '.join(named)} - manual confirmation required"
            )

        return ProcessedText(text=processed, warnings=warnings, has_named_placeholder=bool(named))

    @staticmethod
    def detect_named_placeholders(text: str) -> List[str]:
        """Return the distinct ``{name}`` tokens in ``text``, in order of first appearance."""
        named: List[str] = []
        for match in NAMED_PLACEHOLDER_REGEX.finditer(text):
            token = f"{{{match.group(1)}}}"
            if token not in named:
                named.append(token)
        return named

    @staticmethod
    def extract_numeric_placeholders(text: str) -> List[str]:
        return [match.group(0) for match in NUMERIC_PLACEHOLDER_REGEX.finditer(text)]

    def validate(self, source: str, target: str) -> Dict[str, Union[bool, str]]:
        """
        Compare the number of numeric placeholders in ``source`` and ``target``.

        Only the counts are compared, not which indices appear.
        """
        source_count = len(self.extract_numeric_placeholders(source))
        target_count = len(self.extract_numeric_placeholders(target))

        if source_count != target_count:
            return {
                'valid': False,
                'message': f"Placeholder count mismatch: source has {source_count}, target has {target_count}",
            }
        return {'valid': True, 'message': ''}

"""
GBNF grammar compiler.

Parses the BNF-like grammar dialect understood by whisper.cpp into the flat
rule representation used for grammar-constrained sampling. Each rule is a
sequence of elements terminated by END, with ALT separating alternatives.

Supported syntax:
    root   ::= "yes" | "no" | answer
    answer ::= [a-z]+ ( " " [a-z]+ )*   # comments run to end of line

Groups and the ``*``, ``+``, ``?`` operators are rewritten into generated
rules named ``<rule>_<id>``:
    S* --> S' ::= S S' |
    S+ --> S' ::= S S' | S
    S? --> S' ::= S |
"""

from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Dict, List, Mapping, NamedTuple, Tuple

from ..core.exceptions import GrammarCompileError
from ..utils.file_ops import read_text_source


class ElementType(IntEnum):
    """Grammar element kinds, numbered as the sampling engine expects."""

    END = 0  # end of rule definition
    ALT = 1  # start of alternate definition for rule
    RULE_REF = 2  # non-terminal element: reference to rule
    CHAR = 3  # terminal element: character (code point)
    CHAR_NOT = 4  # inverse char(s) ([^a], [^a-b] [^abc])
    CHAR_RNG_UPPER = 5  # modifies preceding CHAR or CHAR_ALT to be an inclusive range
    CHAR_ALT = 6  # modifies preceding CHAR or CHAR_NOT to add an alternate char


class GrammarElement(NamedTuple):
    type: ElementType
    value: int  # Unicode code point or rule id


Rule = Tuple[GrammarElement, ...]

_CHAR_TYPES = frozenset(
    {
        ElementType.CHAR,
        ElementType.CHAR_NOT,
        ElementType.CHAR_RNG_UPPER,
        ElementType.CHAR_ALT,
    }
)

_SIMPLE_ESCAPES = {
    "t": "\t",
    "r": "\r",
    "n": "\n",
    "\\": "\\",
    '"': '"',
    "[": "[",
    "]": "]",
}

_HEX_ESCAPES = {"x": 2, "u": 4, "U": 8}


@dataclass(frozen=True)
class GrammarRuleSet:
    """
    Compiled grammar: ordered rules plus the rule name -> symbol id table.

    ``rules[i]`` is the definition of the symbol whose id is ``i``.
    An empty rule set means "no grammar".
    """

    rules: Tuple[Rule, ...] = ()
    symbol_ids: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __bool__(self) -> bool:
        return len(self.rules) > 0

    def __len__(self) -> int:
        return len(self.rules)

    def symbol_id(self, name: str) -> int | None:
        return self.symbol_ids.get(name)

    def symbol_names(self) -> Dict[int, str]:
        return {symbol_id: name for name, symbol_id in self.symbol_ids.items()}


def _is_word_char(c: str) -> bool:
    return ("a" <= c <= "z") or ("A" <= c <= "Z") or ("0" <= c <= "9") or c == "-"


class _GrammarParser:
    """Recursive-descent parser over a single grammar source string."""

    def __init__(self, src: str):
        self.src = src
        self.n = len(src)
        self.symbol_ids: Dict[str, int] = {}
        self.rules: List[List[GrammarElement]] = []

    def _error(self, message: str, pos: int) -> GrammarCompileError:
        context = self.src[pos : pos + 20]
        return GrammarCompileError(f"{message} at {context!r}")

    def _peek(self, pos: int) -> str:
        return self.src[pos] if pos < self.n else ""

    def get_symbol_id(self, name: str) -> int:
        return self.symbol_ids.setdefault(name, len(self.symbol_ids))

    def generate_symbol_id(self, base_name: str) -> int:
        next_id = len(self.symbol_ids)
        self.symbol_ids[f"{base_name}_{next_id}"] = next_id
        return next_id

    def add_rule(self, rule_id: int, rule: List[GrammarElement]) -> None:
        if len(self.rules) <= rule_id:
            self.rules.extend([] for _ in range(rule_id + 1 - len(self.rules)))
        self.rules[rule_id] = rule

    def parse_space(self, pos: int, newline_ok: bool) -> int:
        while pos < self.n:
            c = self.src[pos]
            if c == "#":
                while pos < self.n and self.src[pos] not in "\r\n":
                    pos += 1
            elif c in " \t" or (newline_ok and c in "\r\n"):
                pos += 1
            else:
                break
        return pos

    def parse_name(self, pos: int) -> int:
        end = pos
        while end < self.n and _is_word_char(self.src[end]):
            end += 1
        if end == pos:
            raise self._error("expecting name", pos)
        return end

    def parse_hex(self, pos: int, size: int) -> Tuple[int, int]:
        digits = self.src[pos : pos + size]
        if len(digits) != size or any(c not in "0123456789abcdefABCDEF" for c in digits):
            raise self._error(f"expecting {size} hex chars", pos)
        return int(digits, 16), pos + size

    def parse_char(self, pos: int) -> Tuple[int, int]:
        c = self._peek(pos)
        if c == "\\":
            esc = self._peek(pos + 1)
            if esc in _HEX_ESCAPES:
                return self.parse_hex(pos + 2, _HEX_ESCAPES[esc])
            if esc in _SIMPLE_ESCAPES:
                return ord(_SIMPLE_ESCAPES[esc]), pos + 2
            raise self._error("unknown escape", pos)
        if c:
            return ord(c), pos + 1
        raise self._error("unexpected end of input", pos)

    def parse_sequence(
        self,
        pos: int,
        rule_name: str,
        out: List[GrammarElement],
        is_nested: bool,
    ) -> int:
        last_sym_start = len(out)
        while pos < self.n:
            c = self.src[pos]
            if c == '"':
                # literal string
                pos += 1
                last_sym_start = len(out)
                while self._peek(pos) != '"':
                    code_point, pos = self.parse_char(pos)
                    out.append(GrammarElement(ElementType.CHAR, code_point))
                pos = self.parse_space(pos + 1, is_nested)
            elif c == "[":
                # char range(s)
                pos += 1
                start_type = ElementType.CHAR
                if self._peek(pos) == "^":
                    pos += 1
                    start_type = ElementType.CHAR_NOT
                last_sym_start = len(out)
                while self._peek(pos) != "]":
                    code_point, pos = self.parse_char(pos)
                    elem_type = ElementType.CHAR_ALT if last_sym_start < len(out) else start_type
                    out.append(GrammarElement(elem_type, code_point))
                    if self._peek(pos) == "-" and self._peek(pos + 1) not in ("]", ""):
                        upper, pos = self.parse_char(pos + 1)
                        out.append(GrammarElement(ElementType.CHAR_RNG_UPPER, upper))
                pos = self.parse_space(pos + 1, is_nested)
            elif _is_word_char(c):
                # rule reference
                name_end = self.parse_name(pos)
                ref_id = self.get_symbol_id(self.src[pos:name_end])
                pos = self.parse_space(name_end, is_nested)
                last_sym_start = len(out)
                out.append(GrammarElement(ElementType.RULE_REF, ref_id))
            elif c == "(":
                # grouping: parse nested alternates into a synthesized rule
                pos = self.parse_space(pos + 1, True)
                sub_rule_id = self.generate_symbol_id(rule_name)
                pos = self.parse_alternates(pos, rule_name, sub_rule_id, True)
                last_sym_start = len(out)
                out.append(GrammarElement(ElementType.RULE_REF, sub_rule_id))
                if self._peek(pos) != ")":
                    raise self._error("expecting ')'", pos)
                pos = self.parse_space(pos + 1, is_nested)
            elif c in "*+?":
                if last_sym_start == len(out):
                    raise self._error("expecting preceding item to */+/?", pos)
                sub_rule_id = self.generate_symbol_id(rule_name)
                preceding = out[last_sym_start:]
                sub_rule = list(preceding)
                if c in "*+":
                    sub_rule.append(GrammarElement(ElementType.RULE_REF, sub_rule_id))
                sub_rule.append(GrammarElement(ElementType.ALT, 0))
                if c == "+":
                    sub_rule.extend(preceding)
                sub_rule.append(GrammarElement(ElementType.END, 0))
                self.add_rule(sub_rule_id, sub_rule)
                del out[last_sym_start:]
                out.append(GrammarElement(ElementType.RULE_REF, sub_rule_id))
                pos = self.parse_space(pos + 1, is_nested)
            else:
                break
        return pos

    def parse_alternates(
        self, pos: int, rule_name: str, rule_id: int, is_nested: bool
    ) -> int:
        rule: List[GrammarElement] = []
        pos = self.parse_sequence(pos, rule_name, rule, is_nested)
        while self._peek(pos) == "|":
            rule.append(GrammarElement(ElementType.ALT, 0))
            pos = self.parse_space(pos + 1, True)
            pos = self.parse_sequence(pos, rule_name, rule, is_nested)
        rule.append(GrammarElement(ElementType.END, 0))
        self.add_rule(rule_id, rule)
        return pos

    def parse_rule(self, pos: int) -> int:
        name_end = self.parse_name(pos)
        name = self.src[pos:name_end]
        pos = self.parse_space(name_end, False)
        rule_id = self.get_symbol_id(name)

        if not self.src.startswith("::=", pos):
            raise self._error("expecting ::=", pos)
        pos = self.parse_space(pos + 3, True)

        pos = self.parse_alternates(pos, name, rule_id, False)

        c = self._peek(pos)
        if c == "\r":
            pos += 2 if self._peek(pos + 1) == "\n" else 1
        elif c == "\n":
            pos += 1
        elif c:
            raise self._error("expecting newline or end", pos)
        return self.parse_space(pos, True)

    def parse(self) -> GrammarRuleSet:
        pos = self.parse_space(0, True)
        while pos < self.n:
            pos = self.parse_rule(pos)

        names = {symbol_id: name for name, symbol_id in self.symbol_ids.items()}
        for rule in self.rules:
            for elem in rule:
                if elem.type != ElementType.RULE_REF:
                    continue
                if elem.value >= len(self.rules) or not self.rules[elem.value]:
                    raise GrammarCompileError(
                        f"Undefined rule identifier '{names.get(elem.value, elem.value)}'"
                    )

        return GrammarRuleSet(
            rules=tuple(tuple(rule) for rule in self.rules),
            symbol_ids=MappingProxyType(dict(self.symbol_ids)),
        )


def compile_grammar(text: str) -> GrammarRuleSet:
    """
    Compile GBNF grammar text into a rule set.

    Args:
        text: Grammar source

    Returns:
        Non-empty GrammarRuleSet

    Raises:
        GrammarCompileError: On any syntax error, undefined rule reference,
            or when the source defines no rules at all
    """
    rule_set = _GrammarParser(text).parse()
    if not rule_set:
        raise GrammarCompileError("grammar defines no rules")
    return rule_set


def load_grammar(source: str) -> GrammarRuleSet:
    """
    Compile a grammar given as a file path or as inline text.

    The file is read when ``source`` names an existing file on disk,
    otherwise ``source`` itself is compiled.
    """
    return compile_grammar(read_text_source(source))


def _format_char(code_point: int) -> str:
    if 0x20 <= code_point <= 0x7F:
        return chr(code_point)
    return f"<U+{code_point:04X}>"


def _format_rule(name: str, rule: Rule, names: Mapping[int, str]) -> str:
    parts = [f"{name} ::= "]
    # the trailing END element is implicit in the text form
    for i, elem in enumerate(rule[:-1]):
        if elem.type == ElementType.ALT:
            parts.append("| ")
        elif elem.type == ElementType.RULE_REF:
            parts.append(f"{names.get(elem.value, elem.value)} ")
        elif elem.type == ElementType.CHAR:
            parts.append("[" + _format_char(elem.value))
        elif elem.type == ElementType.CHAR_NOT:
            parts.append("[^" + _format_char(elem.value))
        elif elem.type == ElementType.CHAR_RNG_UPPER:
            parts.append("-" + _format_char(elem.value))
        elif elem.type == ElementType.CHAR_ALT:
            parts.append(_format_char(elem.value))

        if elem.type in _CHAR_TYPES and rule[i + 1].type not in (
            ElementType.CHAR_ALT,
            ElementType.CHAR_RNG_UPPER,
        ):
            parts.append("] ")
    return "".join(parts).rstrip()


def format_grammar(rule_set: GrammarRuleSet) -> str:
    """Render a compiled grammar as one ``name ::= ...`` line per rule."""
    names = rule_set.symbol_names()
    return "\n".join(
        _format_rule(names.get(i, str(i)), rule, names)
        for i, rule in enumerate(rule_set.rules)
    )

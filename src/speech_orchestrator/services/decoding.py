"""
Decoding configuration builder.

Maps request parameters plus the currently bound grammar onto the complete,
immutable configuration handed to the inference engine for one call.
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Tuple

from ..core.config import Settings
from ..core.exceptions import InvalidRequestError
from ..core.logging import logger
from ..grammar.parser import GrammarRuleSet, Rule
from .cancellation import CancellationToken


class SamplingStrategy(str, Enum):
    GREEDY = "greedy"
    BEAM_SEARCH = "beam_search"


@dataclass(frozen=True)
class DecodingParams:
    """
    Request-level decoding knobs.

    Defaults mirror Settings; ``from_settings`` applies per-request overrides
    on top of the configured defaults.
    """

    n_threads: int = 4
    offset_ms: int = 0
    duration_ms: int = 0
    max_context: int = -1
    max_len: int = 0
    best_of: int = 5
    beam_size: int = 5
    audio_ctx: int = 0
    word_thold: float = 0.01
    entropy_thold: float = 2.40
    logprob_thold: float = -1.00
    grammar_penalty: float = 100.0
    temperature: float = 0.0
    temperature_inc: float = 0.2
    no_fallback: bool = False
    translate: bool = False
    detect_language: bool = False
    split_on_word: bool = False
    prompt: str = ""
    suppress_regex: str = ""
    grammar_rule: str = ""

    @classmethod
    def from_settings(
        cls, settings: Settings, overrides: Mapping[str, Any] | None = None
    ) -> "DecodingParams":
        """
        Build params from configured defaults and optional overrides.

        ``None`` override values mean "keep the default".

        Raises:
            InvalidRequestError: If an override names an unknown parameter
        """
        params = cls(
            n_threads=settings.N_THREADS,
            offset_ms=settings.OFFSET_T_MS,
            duration_ms=settings.DURATION_MS,
            max_context=settings.MAX_CONTEXT,
            max_len=settings.MAX_LEN,
            best_of=settings.BEST_OF,
            beam_size=settings.BEAM_SIZE,
            audio_ctx=settings.AUDIO_CTX,
            word_thold=settings.WORD_THOLD,
            entropy_thold=settings.ENTROPY_THOLD,
            logprob_thold=settings.LOGPROB_THOLD,
            grammar_penalty=settings.GRAMMAR_PENALTY,
            temperature=settings.TEMPERATURE,
            temperature_inc=settings.TEMPERATURE_INC,
            no_fallback=settings.NO_FALLBACK,
            translate=settings.TRANSLATE,
            detect_language=settings.DETECT_LANGUAGE,
            split_on_word=settings.SPLIT_ON_WORD,
            prompt=settings.INITIAL_PROMPT,
            suppress_regex=settings.SUPPRESS_REGEX,
            grammar_rule=settings.GRAMMAR_RULE,
        )
        if not overrides:
            return params

        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise InvalidRequestError(f"Unknown decoding parameters: {', '.join(unknown)}")

        return dataclasses.replace(
            params, **{key: value for key, value in overrides.items() if value is not None}
        )


def _continue_encoding() -> bool:
    return True


def _never_abort() -> bool:
    return False


@dataclass(frozen=True)
class DecodingConfiguration:
    """
    Everything the engine needs for one full-context decode.

    Hooks:
        encoder_begin_callback: called before each encoder pass, False aborts
        abort_callback: called before each compute step, True aborts
    """

    strategy: SamplingStrategy
    language: str
    n_threads: int = 4
    translate: bool = False
    detect_language: bool = False
    offset_ms: int = 0
    duration_ms: int = 0
    max_context: int = -1
    max_len: int = 0
    split_on_word: bool = False
    thold_pt: float = 0.01
    audio_ctx: int = 0
    initial_prompt: str = ""
    suppress_regex: str | None = None
    best_of: int = 5
    beam_size: int = 5
    temperature: float = 0.0
    temperature_inc: float = 0.2
    entropy_thold: float = 2.40
    logprob_thold: float = -1.00

    grammar_rules: Tuple[Rule, ...] = ()
    i_start_rule: int | None = None
    grammar_penalty: float = 100.0

    encoder_begin_callback: Callable[[], bool] = field(default=_continue_encoding, repr=False)
    abort_callback: Callable[[], bool] = field(default=_never_abort, repr=False)

    warnings: Tuple[str, ...] = ()

    @property
    def grammar_active(self) -> bool:
        return bool(self.grammar_rules) and self.i_start_rule is not None


def select_strategy(beam_size: int, use_grammar: bool) -> SamplingStrategy:
    """Beam search when a beam is requested or grammar sampling is in play."""
    if beam_size > 1 or use_grammar:
        return SamplingStrategy.BEAM_SEARCH
    return SamplingStrategy.GREEDY


def build_decoding_config(
    params: DecodingParams,
    language: str,
    grammar: GrammarRuleSet | None = None,
    token: CancellationToken | None = None,
) -> DecodingConfiguration:
    """
    Build the decoding configuration for one inference call.

    Grammar sampling is requested when a non-empty rule set is bound and a
    start rule is named. If the start rule does not exist in the rule set the
    request proceeds unconstrained and a warning is recorded.

    Args:
        params: Resolved decoding parameters
        language: Language code ("auto" allowed)
        grammar: Currently bound rule set (empty or None means no grammar)
        token: The request's own cancellation token

    Returns:
        Frozen DecodingConfiguration
    """
    grammar = grammar if grammar is not None else GrammarRuleSet()
    token = token if token is not None else CancellationToken()

    use_grammar = bool(grammar) and bool(params.grammar_rule)
    strategy = select_strategy(params.beam_size, use_grammar)

    warnings: list[str] = []
    grammar_fields: dict[str, Any] = {}
    if use_grammar:
        start_rule = grammar.symbol_id(params.grammar_rule)
        if start_rule is None:
            message = (
                f"grammar rule '{params.grammar_rule}' not found - skipping grammar sampling"
            )
            logger.warning(message)
            warnings.append(message)
        else:
            grammar_fields = {
                "grammar_rules": grammar.rules,
                "i_start_rule": start_rule,
                "grammar_penalty": params.grammar_penalty,
            }

    return DecodingConfiguration(
        strategy=strategy,
        language=language,
        n_threads=params.n_threads,
        translate=params.translate,
        detect_language=params.detect_language,
        offset_ms=params.offset_ms,
        duration_ms=params.duration_ms,
        max_context=params.max_context,
        max_len=params.max_len,
        split_on_word=params.split_on_word,
        thold_pt=params.word_thold,
        audio_ctx=params.audio_ctx,
        initial_prompt=params.prompt,
        suppress_regex=params.suppress_regex or None,
        best_of=params.best_of,
        beam_size=params.beam_size,
        temperature=params.temperature,
        temperature_inc=0.0 if params.no_fallback else params.temperature_inc,
        entropy_thold=params.entropy_thold,
        logprob_thold=params.logprob_thold,
        encoder_begin_callback=lambda: not token.is_cancelled,
        abort_callback=lambda: token.is_cancelled,
        warnings=tuple(warnings),
        **grammar_fields,
    )

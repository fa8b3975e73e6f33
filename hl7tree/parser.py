"""
Main HL7 v2 parser.

This module orchestrates the parsing process: preprocessing (BOM,
delimiter detection, newline normalization), tokenization, per-segment
tree building through the builder registry, and validation hooks. The
result is an immutable, position-annotated Root node.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from .builders import BuildContext, EmptyMode, SegmentBuilder, SegmentBuildInput
from .delimiters import DEFAULT_DELIMITERS, Delimiters
from .exceptions import ValidationError, ValidationWarning
from .models import START_POINT, Node, Position, Root, Segment
from .preprocessor import PreprocessorStep, run_preprocessors
from .registry import SegmentBuilderRegistry
from .settings import HL7v2Settings, load_settings
from .tokenizer import HL7Tokenizer, Token, TokenType
from .validation import ValidationHook

logger = logging.getLogger(__name__)

DiagnosticSink = Callable[[ValidationWarning, Optional[Node], Optional[BuildContext]], None]


# Parse Options
@dataclass
class ParseOptions:
    """
    Options for a parse call.

    Attributes:
        delimiters: Delimiter overrides (mapping or Delimiters); ignored for
            any delimiter detected from the MSH header
        auto_detect_delimiters: Read delimiters from the message's MSH header
        custom_segment_builders: Extra builders, keyed by their segment_type
        validation_hooks: Hooks run after each segment and the whole message
        empty_mode: "legacy" or "empty"; overrides the settings value
        settings: Settings mapping or HL7v2Settings
        preprocessors: Replacement preprocessing steps; [] disables them
        on_diagnostic: Sink receiving validation warnings
    """

    delimiters: Optional[Union[Delimiters, Mapping[str, str]]] = None
    auto_detect_delimiters: bool = True
    custom_segment_builders: Sequence[SegmentBuilder] = field(default_factory=list)
    validation_hooks: Sequence[ValidationHook] = field(default_factory=list)
    empty_mode: Optional[Union[EmptyMode, str]] = None
    settings: Optional[Union[HL7v2Settings, Mapping[str, Any]]] = None
    preprocessors: Optional[Sequence[PreprocessorStep]] = None
    on_diagnostic: Optional[DiagnosticSink] = None


# HL7 v2 Parser Class
class HL7v2Parser:
    """
    Parser turning HL7 v2 text into an AST.

    The parser never raises for malformed message content: empty input
    gives an empty Root, unknown or truncated segments become whatever
    nodes can be recovered. Only a validation hook reporting an error
    aborts the parse.

    Usage:
        parser = HL7v2Parser(ParseOptions(empty_mode="empty"))
        root = parser.parse(message_text)
        for warning in parser.warnings:
            print(warning)
    """

    def __init__(self, options: Optional[ParseOptions] = None):
        """
        Initialize the parser.

        Args:
            options: Parse options; defaults apply when omitted

        Raises:
            pydantic.ValidationError: If the settings value is invalid
            ValueError: If the empty mode or a delimiter name is unknown
        """
        self.options = options or ParseOptions()
        self.settings = load_settings(self.options.settings)
        self.empty_mode = EmptyMode(self.options.empty_mode or self.settings.empty_mode)
        self.delimiters = (
            DEFAULT_DELIMITERS.merge(self.settings.delimiters.overrides()).merge(
                self.options.delimiters
            )
        )
        self.registry = SegmentBuilderRegistry(self.options.custom_segment_builders)
        self.hooks = list(self.options.validation_hooks)
        self.tokenizer = HL7Tokenizer(self.delimiters)
        self.warnings: List[ValidationWarning] = []

    def parse(self, content: str) -> Root:
        """
        Parse one HL7 message.

        Args:
            content: Raw HL7 message text

        Returns:
            The Root node of the message tree

        Raises:
            ValidationError: If a validation hook reports an error
        """
        self.warnings = []

        ctx = run_preprocessors(
            content or "",
            self.delimiters,
            auto_detect=self.options.auto_detect_delimiters,
            steps=self.options.preprocessors,
        )
        text = ctx.input
        delimiters = ctx.delimiters
        build_context = BuildContext(delimiters=delimiters, empty_mode=self.empty_mode)

        if not text.strip():
            root = Root(
                children=(),
                delimiter=delimiters.segment,
                position=Position(START_POINT, START_POINT),
                delimiters=delimiters,
            )
            self._run_hooks(root, build_context)
            return root

        self.tokenizer.reset(text, delimiters)
        segments: List[Segment] = []
        for tokens in self._segment_spans(self.tokenizer):
            segment = self._build_segment(tokens, len(segments), text, build_context)
            if segment is None:
                continue
            self._run_hooks(segment, build_context)
            segments.append(segment)

        root = Root(
            children=tuple(segments),
            delimiter=delimiters.segment,
            position=Position(START_POINT, self.tokenizer.point),
            delimiters=delimiters,
            data=dict(ctx.metadata) or None,
        )
        self._run_hooks(root, build_context)
        return root

    def _segment_spans(self, tokens):
        """Group the token stream into per-segment token tuples."""
        current: List[Token] = []
        for token in tokens:
            if token.type is TokenType.SEGMENT_END:
                yield tuple(current)
                current = []
            else:
                current.append(token)
        if current:
            yield tuple(current)

    def _build_segment(
        self, tokens, index: int, text: str, context: BuildContext
    ) -> Optional[Segment]:
        if not tokens:
            return None
        # Whitespace-only lines between segments
        if all(t.type is TokenType.TEXT and not (t.value or "").strip() for t in tokens):
            return None

        first = tokens[0]
        segment_type = first.value if first.type is TokenType.TEXT else ""
        build_input = SegmentBuildInput(
            segment_type=segment_type or "",
            tokens=tokens,
            index=index,
            source=text,
            context=context,
        )
        builder = self.registry.resolve(build_input)
        segment = builder.build(build_input)
        if segment is None:
            logger.debug(
                "Omitting segment %r at line %d: no fields",
                segment_type,
                first.position.start.line,
            )
        elif segment.index != index:
            segment = replace(segment, index=index)
        return segment

    def _run_hooks(self, node: Node, context: BuildContext) -> None:
        for hook in self.hooks:
            result = hook.validate(node, context)
            for message in result.warnings or ():
                self._report_warning(ValidationWarning(message, node), node, context)
            if result.errors:
                raise ValidationError(result.errors[0], node=node, errors=result.errors)
            if not result.is_valid:
                raise ValidationError("Validation error", node=node)

    def _report_warning(
        self, warning: ValidationWarning, node: Node, context: BuildContext
    ) -> None:
        self.warnings.append(warning)
        logger.warning("%s", warning.message)
        if self.options.on_diagnostic is not None:
            self.options.on_diagnostic(warning, node, context)


def parse(text: str, options: Optional[ParseOptions] = None, **option_overrides) -> Root:
    """
    Parse HL7 v2 text into a Root node.

    Keyword arguments are ParseOptions fields and override ``options``::

        root = parse(message, empty_mode="empty")

    Raises:
        TypeError: If a keyword is not a ParseOptions field
        ValidationError: If a validation hook reports an error
    """
    options = options or ParseOptions()
    if option_overrides:
        options = replace(options, **option_overrides)
    return HL7v2Parser(options).parse(text)

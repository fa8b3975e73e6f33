"""
Segment builder registry.

Maps a segment type ("MSH", "PID", ...) to the builder responsible for
it. Every registry starts with the built-in MSH builder; any type without
a specific builder is handled by the default one.
"""

import logging
from typing import Dict, Iterable, List, Optional

from .builders import MSH_SEGMENT_TYPE, MSHSegmentBuilder, SegmentBuilder, SegmentBuildInput

logger = logging.getLogger(__name__)


class SegmentBuilderRegistry:
    """
    Strategy map from segment type to SegmentBuilder.

    Registries are per parser instance; registering a builder never
    affects other parsers.

    Usage:
        registry = SegmentBuilderRegistry([PIDBuilder()])
        builder = registry.resolve(build_input)
    """

    def __init__(self, custom_builders: Optional[Iterable[SegmentBuilder]] = None):
        self.default_builder = SegmentBuilder()
        self._builders: Dict[str, SegmentBuilder] = {}
        self._builtins: Dict[str, SegmentBuilder] = {MSH_SEGMENT_TYPE: MSHSegmentBuilder()}
        self._builders.update(self._builtins)
        for builder in custom_builders or ():
            self.register(builder)

    def register(self, builder: SegmentBuilder, segment_type: Optional[str] = None) -> None:
        """
        Register ``builder`` for ``segment_type`` (default: builder.segment_type).

        Replaces any builder already registered for that type, including
        the built-in MSH builder.

        Raises:
            ValueError: If no segment type can be determined
        """
        key = segment_type or getattr(builder, "segment_type", None)
        if not key:
            raise ValueError("Segment builder has no segment_type")
        self._builders[key] = builder
        logger.debug("Registered %s for %s segments", type(builder).__name__, key)

    def unregister(self, segment_type: str) -> bool:
        """
        Remove the custom builder for ``segment_type``.

        A built-in builder that was overridden comes back into effect.

        Returns:
            True if a custom builder was removed
        """
        current = self._builders.get(segment_type)
        builtin = self._builtins.get(segment_type)
        if current is None or current is builtin:
            return False
        if builtin is not None:
            self._builders[segment_type] = builtin
        else:
            del self._builders[segment_type]
        return True

    def get_builder(self, segment_type: str) -> SegmentBuilder:
        """The builder for ``segment_type``, or the default builder."""
        return self._builders.get(segment_type, self.default_builder)

    def has_builder(self, segment_type: str) -> bool:
        return segment_type in self._builders

    def registered_types(self) -> List[str]:
        return sorted(self._builders)

    def resolve(self, input: SegmentBuildInput) -> SegmentBuilder:
        """Pick the builder for ``input``, falling back when it declines."""
        builder = self.get_builder(input.segment_type)
        if builder is not self.default_builder and not builder.can_build(input):
            return self.default_builder
        return builder

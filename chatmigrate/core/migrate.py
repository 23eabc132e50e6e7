"""Migration chain that upgrades any supported export to the current version."""

import logging
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Callable, Optional

from chatmigrate.core.converters import (
    convert_v1_to_v2,
    convert_v2_to_v3,
    convert_v3_to_v4,
    convert_v4_to_v5,
)
from chatmigrate.core.detect import (
    is_export_format_v1,
    is_export_format_v2,
    is_export_format_v3,
    is_export_format_v4,
    is_export_format_v5,
)
from chatmigrate.core.models import MigrationResult

logger = logging.getLogger(__name__)


class UnsupportedFormatError(ValueError):
    """raised when a payload matches none of the known export versions."""


@dataclass(frozen=True)
class MigrationStep:
    """one version of the chain: its shape predicate and its upgrade to the next."""

    version: int
    matches: Callable[[Any], bool]
    convert: Optional[Callable[[Any], Any]] = None

    @property
    def label(self) -> str:
        return str(self.version)

    @property
    def terminal(self) -> bool:
        return self.convert is None


class MigrationChain:
    """ordered registry of migration steps."""

    def __init__(self) -> None:
        self._steps: list[MigrationStep] = []

    @property
    def steps(self) -> tuple[MigrationStep, ...]:
        return tuple(self._steps)

    @property
    def latest_version(self) -> Optional[int]:
        return self._steps[-1].version if self._steps else None

    def register(self, step: MigrationStep) -> None:
        """
        appends a step to the chain.

        Args:
            step: the next version's step

        Raises:
            ValueError: if the version does not directly follow the last
                registered one, or the last step is terminal
        """
        if self._steps:
            last = self._steps[-1]
            if last.terminal:
                raise ValueError(
                    f"Cannot register version {step.version} after terminal "
                    f"version {last.version}"
                )
            if step.version != last.version + 1:
                raise ValueError(
                    f"Version {step.version} does not follow version {last.version}"
                )
        self._steps.append(step)

    def migrate(self, data: Any) -> MigrationResult:
        """
        upgrades data through every step whose predicate currently matches.

        Predicates are re-tested against the working value after each
        conversion, so any starting version falls through the same chain.

        Args:
            data: decoded JSON payload of any supported version

        Returns:
            MigrationResult with the current-version payload and the label of
            the version the input started at

        Raises:
            UnsupportedFormatError: if no step matches the input
        """
        current = deepcopy(data)
        original_version: Optional[str] = None

        for step in self._steps:
            if not step.matches(current):
                continue
            if original_version is None:
                original_version = step.label
            if step.convert is not None:
                current = step.convert(current)
                logger.debug(
                    "Converted export from v%d to v%d", step.version, step.version + 1
                )

        if original_version is None:
            raise UnsupportedFormatError("Unsupported data format")

        return MigrationResult(data=current, original_version=original_version)


default_chain = MigrationChain()
default_chain.register(MigrationStep(1, is_export_format_v1, convert_v1_to_v2))
default_chain.register(MigrationStep(2, is_export_format_v2, convert_v2_to_v3))
default_chain.register(MigrationStep(3, is_export_format_v3, convert_v3_to_v4))
default_chain.register(MigrationStep(4, is_export_format_v4, convert_v4_to_v5))
default_chain.register(MigrationStep(5, is_export_format_v5))


def migrate(data: Any, chain: MigrationChain = default_chain) -> MigrationResult:
    """migrates data with the given chain (defaults to the built-in v1..v5 chain)."""
    return chain.migrate(data)


def clean_data(data: Any) -> dict[str, Any]:
    """returns only the current-version payload of a migration."""
    result: dict[str, Any] = migrate(data).data
    return result

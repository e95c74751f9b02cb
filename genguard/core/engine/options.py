"""
Option compiler — merge layered option sources into one argument vector.

Sources, lowest precedence first:

    policy      flags derived from settings (corba, extended states,
                version-gated parallel build / transports / type export)
    global_raw  literal tokens from the global ``options`` list
    node_raw    literal tokens from the node's ``options`` list

Each token is parsed into an ``OptionEntry`` keyed by its flag
identifier (the leading ``[\\w-]+`` run). Adding an entry first drops
every earlier entry for the same flag, in either spelling: ``--no-X``
removes ``--X`` and ``--X=...``, ``--X`` removes ``--no-X``.

The result is sorted so the same effective option set always yields
the same vector, and the spec file is appended last.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel, ConfigDict

from genguard.core.engine.version import (
    PARALLEL_BUILD_SINCE,
    TRANSPORTS_SINCE,
    TYPE_EXPORT_SINCE,
    version_at_least,
)
from genguard.core.models.generation import GenerationNode, GenerationSettings

OptionLayer = Literal["policy", "global_raw", "node_raw"]

NEGATION_PREFIX = "--no-"

_FLAG_RE = re.compile(r"^([\w-]+)")


class OptionEntry(BaseModel):
    """One generator flag, tagged with the layer it came from."""

    model_config = ConfigDict(frozen=True)

    flag: str          # "--transports", "--no-extended-states"
    token: str         # "--transports=corba,typelib"
    negated: bool = False
    layer: OptionLayer = "node_raw"

    @property
    def positive_flag(self) -> str:
        """The flag with any ``--no-`` removed."""
        if self.negated:
            return "--" + self.flag[len(NEGATION_PREFIX):]
        return self.flag

    def conflicts_with(self, other: OptionEntry) -> bool:
        return self.flag == other.flag or self.positive_flag == other.positive_flag


def parse_flag(token: str, layer: OptionLayer = "node_raw") -> OptionEntry:
    """Parse a literal token into an ``OptionEntry``.

    Raises:
        ValueError: If the token does not start with a flag identifier.
    """
    match = _FLAG_RE.match(token)
    if not match:
        raise ValueError(f"cannot parse the provided option {token!r}")
    flag = match.group(1)
    negated = flag.startswith(NEGATION_PREFIX) and len(flag) > len(NEGATION_PREFIX)
    return OptionEntry(flag=flag, token=token, negated=negated, layer=layer)


def apply_override(
    entries: list[OptionEntry],
    token: str | OptionEntry,
    layer: OptionLayer = "node_raw",
) -> list[OptionEntry]:
    """Return ``entries`` with ``token`` appended, conflicting entries dropped."""
    entry = token if isinstance(token, OptionEntry) else parse_flag(token, layer)
    kept = [e for e in entries if not e.conflicts_with(entry)]
    kept.append(entry)
    return kept


def merge_options(
    base: Iterable[str | OptionEntry],
    *override_layers: tuple[OptionLayer, Iterable[str]],
) -> list[OptionEntry]:
    """Fold the base options and each override layer, in order."""
    entries: list[OptionEntry] = []
    for token in base:
        entries = apply_override(entries, token, "policy")
    for layer, tokens in override_layers:
        for token in tokens:
            entries = apply_override(entries, token, layer)
    return entries


def policy_options(
    settings: GenerationSettings,
    node: GenerationNode,
    version: str | None,
) -> list[str]:
    """Flags decided by policy, before any raw override."""
    tokens: list[str] = []
    if node.effective_corba(settings):
        tokens.append("--corba")

    ext_states = node.effective_extended_states(settings)
    if ext_states is not None:
        tokens.append("--extended-states" if ext_states else "--no-extended-states")

    # Unknown version: gated flags are left out rather than risk a rejection
    if version is not None:
        ordering = settings.version_ordering
        if version_at_least(version, PARALLEL_BUILD_SINCE, ordering):
            tokens.append(f"--parallel-build={node.effective_parallel_level(settings)}")
        if version_at_least(version, TYPE_EXPORT_SINCE, ordering):
            tokens.append(f"--type-export-policy={settings.type_export_policy}")
        if version_at_least(version, TRANSPORTS_SINCE, ordering):
            transports = ",".join(sorted(set(settings.transports)))
            tokens.append(f"--transports={transports}")
    return tokens


def compile_options(
    settings: GenerationSettings,
    node: GenerationNode,
    version: str | None,
    spec_file: str,
) -> list[str]:
    """Build the final generator argument vector for ``node``.

    Args:
        settings: Global generation settings.
        node: The generation node.
        version: Resolved generator version, or None if unknown.
        spec_file: Specification file, appended as the last argument.

    Returns:
        Sorted flags followed by the spec file.
    """
    entries = merge_options(
        policy_options(settings, node, version),
        ("global_raw", settings.options),
        ("node_raw", node.options),
    )
    arguments = sorted(e.token for e in entries)
    arguments.append(spec_file)
    return arguments

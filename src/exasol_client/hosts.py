"""Expansion of host specifications into candidate addresses."""

from __future__ import annotations

import random
import re

from .errors import InvalidHostRange

_HOST_RANGE = re.compile(r"^((.+?)(\d+))\.\.(\d+)$")


def resolve_hosts(spec: str) -> list[str]:
    """Expand ``host1,node1..3`` into ``["host1", "node1", "node2", "node3"]``."""
    hosts: list[str] = []
    for token in spec.split(","):
        match = _HOST_RANGE.match(token)
        if match is None:
            hosts.append(token)
            continue
        prefix, start, stop = match.group(2), int(match.group(3)), int(match.group(4))
        if stop < start:
            raise InvalidHostRange(token)
        hosts.extend(f"{prefix}{index}" for index in range(start, stop + 1))
    return hosts


def shuffle_hosts(hosts: list[str], rng: random.Random | None = None) -> list[str]:
    """Shuffle in place (and return) to spread load across cluster nodes."""
    (rng or random.SystemRandom()).shuffle(hosts)
    return hosts


def candidate_hosts(spec: str) -> list[str]:
    return shuffle_hosts(resolve_hosts(spec))


__all__ = ["candidate_hosts", "resolve_hosts", "shuffle_hosts"]

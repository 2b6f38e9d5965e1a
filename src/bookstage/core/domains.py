"""Parameter domains for route templates.

A domain maps every parameter slot of a template to the ordered sequence of
values that should be prerendered. Domains are computed once, before any
rendering, and frozen for the rest of the generation pass.
"""

import itertools
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from types import MappingProxyType

from bookstage.core.errors import DomainError
from bookstage.core.routes import ResolvedParams, RouteTemplate

logger = logging.getLogger(__name__)

DomainProvider = Callable[[], Iterable[str]]

ParameterDomain = Mapping[str, tuple[str, ...]]


def compute_domain(
    template: RouteTemplate,
    providers: Mapping[str, DomainProvider],
) -> ParameterDomain:
    """Call the provider of every slot and freeze the results.

    Args:
        template: Route template whose slots need values
        providers: Provider callable per slot name

    Returns:
        Read-only mapping of slot name to tuple of values

    Raises:
        DomainError: If a slot has no provider, a provider fails,
            or a provider yields a non-string value
    """
    domain: dict[str, tuple[str, ...]] = {}

    for slot in template.slots:
        provider = providers.get(slot)
        if provider is None:
            raise DomainError(f"No domain provider for slot '{slot}' in {template.pattern}")

        try:
            values = tuple(provider())
        except Exception as e:
            raise DomainError(f"Domain provider for slot '{slot}' failed: {e}") from e

        for value in values:
            if not isinstance(value, str):
                raise DomainError(
                    f"Domain provider for slot '{slot}' returned non-string value {value!r}"
                )

        logger.info(f"{slot}: {len(values)} values")
        domain[slot] = values

    return MappingProxyType(domain)


def iter_params(template: RouteTemplate, domain: ParameterDomain) -> Iterator[ResolvedParams]:
    """Lazily yield the cartesian product of a domain in slot and value order."""
    slots = template.slots
    for combination in itertools.product(*(domain[slot] for slot in slots)):
        yield ResolvedParams(dict(zip(slots, combination, strict=True)))


def domain_size(template: RouteTemplate, domain: ParameterDomain) -> int:
    """Number of parameter combinations a domain produces."""
    size = 1
    for slot in template.slots:
        size *= len(domain[slot])
    return size


def cycle_values(values: Sequence[str], total: int) -> list[str]:
    """Repeat base values cyclically until ``total`` entries exist.

    Used to stress generation with large domains built from a small catalog.
    """
    if total < 0:
        raise ValueError("total must not be negative")
    if not values:
        return []
    return list(itertools.islice(itertools.cycle(values), total))

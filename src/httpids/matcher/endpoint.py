"""
Endpoint predicates used by the detector for the address and port filters.

A predicate gets the rule's value ("want") and the observed value ("have"),
both as strings, and says whether the rule accepts it.
"""

from typing import Callable

EndpointMatcher = Callable[[str, str], bool]


def exact_match(want: str, have: str) -> bool:
    """'any' (or an empty value) matches everything, anything else must be equal."""
    if want == "any" or not want:
        return True
    return want == have

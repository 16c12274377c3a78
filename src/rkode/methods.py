# methods.py
from typing import Callable, Dict, List

from .bweuler import BwEuler
from .erk import ExplicitRK
from .erk_tables import TABLEAUS
from .errors import ConfigError
from .radau5 import Radau5
from .rkmethod import RKMethod

METHODS: Dict[str, Callable[[], RKMethod]] = {
    name: (lambda tab=tab: ExplicitRK(tab)) for name, tab in TABLEAUS.items()
}
METHODS["bweuler"] = BwEuler
METHODS["radau5"] = Radau5


def available_methods() -> List[str]:
    return sorted(METHODS)


def new_rk_method(name: str) -> RKMethod:
    """Allocate the step method registered under `name`."""
    try:
        make = METHODS[name]
    except KeyError:
        raise ConfigError(f"unknown method {name!r}; "
                          f"available: {available_methods()}") from None
    return make()

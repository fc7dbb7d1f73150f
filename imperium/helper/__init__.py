from imperium.helper.rng import (
    create_id_factory,
    create_random,
    derive_seed,
    string_to_seed,
    uuid_id_factory,
)
from imperium.helper.galaxy_helpers import (
    create_test_galaxy,
    find_route,
    find_system,
    route_length,
)


__all__ = [
    "create_id_factory",
    "create_random",
    "derive_seed",
    "string_to_seed",
    "uuid_id_factory",
    "create_test_galaxy",
    "find_route",
    "find_system",
    "route_length",
]

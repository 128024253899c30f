"""Query interface used by the display layer."""
from typing import Dict, Iterable, Optional

from .accessibility import create_isochrone, isochrones_for_budgets
from .cache import MISSING, CacheKey, IsochroneCache
from .config import DEFAULT_WALK_DISTANCE_M, WALKING_SPEED_MPS
from .models import Coordinate, Isochrone, Network
from .other import logger
from .routers import build_graph


class IsochroneEngine:
    """
    Computes cached isochrones over one network.

    The graph is built once and shared read-only by every query. The cache is
    injected so that separate engines (or tests) do not share results.

    Parameters
    ----------
    network : Network
        Station network, e.g. from :func:`nxisochrone.loaders.load_network`.
    cache : IsochroneCache, optional
        Result memo. A fresh cache with default settings is created if omitted.
    walking_speed : float, optional
        Walking speed in meters per second.
    strategy : str, optional
        Reachability search strategy, ``"seeded"`` or ``"per_start"``.

    Examples
    --------
    >>> engine = IsochroneEngine(load_network("network.json"))
    >>> isochrone = engine.compute_isochrone(Coordinate(40.7527, -73.9772), 1800)
    """

    def __init__(
        self,
        network: Network,
        cache: Optional[IsochroneCache] = None,
        walking_speed: float = WALKING_SPEED_MPS,
        strategy: str = "seeded",
    ):
        self.network = network
        self.graph = build_graph(network)
        self.cache = cache if cache is not None else IsochroneCache()
        self.walking_speed = walking_speed
        self.strategy = strategy

    def _compute(self, key: CacheKey) -> Optional[Isochrone]:
        return create_isochrone(
            self.network,
            Coordinate(lat=key.lat, lon=key.lon),
            max_travel_time_sec=key.max_travel_time_sec,
            walk_distance=key.walk_distance,
            graph=self.graph,
            walking_speed=self.walking_speed,
            strategy=self.strategy,
        )

    def compute_isochrone(
        self,
        origin: Coordinate,
        max_travel_time_sec: float,
        walk_distance_limit: float = DEFAULT_WALK_DISTANCE_M,
    ) -> Optional[Isochrone]:
        """
        Isochrone for one origin and budget, or None when nothing is reachable.

        The result is computed at the rounded origin, budget and walk distance
        of the cache key, so every request sharing a key gets the same answer
        regardless of which one arrived first.
        """
        key = self.cache.make_key(origin, max_travel_time_sec, walk_distance_limit)
        cached = self.cache.get(key)
        if cached is not MISSING:
            logger.debug(f"Cache hit for {key}")
            return cached

        isochrone = self._compute(key)
        self.cache.put(key, isochrone)
        return isochrone

    def compute_isochrones(
        self,
        origin: Coordinate,
        budgets: Iterable[float],
        walk_distance_limit: float = DEFAULT_WALK_DISTANCE_M,
        num_processes: int = 1,
    ) -> Dict[float, Optional[Isochrone]]:
        """
        Isochrones for a series of budgets, computing only the cache misses.

        Budgets falling into the same cache bucket share one result. Returns a
        dict budget -> Isochrone or None in the order of ``budgets``.
        """
        budgets = list(dict.fromkeys(budgets))
        keys = {
            budget: self.cache.make_key(origin, budget, walk_distance_limit)
            for budget in budgets
        }

        results = {}
        pending = []
        for key in dict.fromkeys(keys.values()):
            cached = self.cache.get(key)
            if cached is MISSING:
                pending.append(key)
            else:
                results[key] = cached

        if pending:
            # Keys of one request differ only in the budget bucket
            canonical = pending[0]
            computed = isochrones_for_budgets(
                self.network,
                Coordinate(lat=canonical.lat, lon=canonical.lon),
                [key.max_travel_time_sec for key in pending],
                walk_distance=canonical.walk_distance,
                graph=self.graph,
                walking_speed=self.walking_speed,
                strategy=self.strategy,
                num_processes=num_processes,
            )
            for key in pending:
                isochrone = computed[key.max_travel_time_sec]
                self.cache.put(key, isochrone)
                results[key] = isochrone

        return {budget: results[keys[budget]] for budget in budgets}

#!/usr/bin/env python3
"""Small catalog API that memoizes product lookups through shop_cache.

    python examples/catalog_server.py --port 8000
    REDIS_URL=redis://localhost:6379/0 python examples/catalog_server.py

Then:
    curl localhost:8000/products/p1       # slow first time, cached afterwards
    curl -X DELETE localhost:8000/products/p1
    curl localhost:8000/cache/stats
"""

import asyncio
import logging

import click
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from shop_cache import UnifiedCacheService
from shop_cache.integrations import cache_lifespan, get_cache
from shop_cache.utils.config import CacheSettings

logger = logging.getLogger(__name__)

PRODUCTS = {
    "p1": {"id": "p1", "title": "Canvas tote", "price": 24.0, "category": "bags"},
    "p2": {"id": "p2", "title": "Leather boots", "price": 140.0, "category": "shoes"},
}


async def load_product(product_id: str):
    # stands in for a database query
    await asyncio.sleep(0.2)
    return PRODUCTS.get(product_id)


async def get_product(request: Request) -> JSONResponse:
    cache = get_cache(request)
    product_id = request.path_params["product_id"]
    product = await cache.get_or_set(
        UnifiedCacheService.product_key(product_id),
        lambda: load_product(product_id),
        ttl_seconds=600,
    )
    if product is None:
        return JSONResponse({"error": "not found"}, status_code=404)
    return JSONResponse(product)


async def invalidate_product(request: Request) -> JSONResponse:
    cache = get_cache(request)
    product_id = request.path_params["product_id"]
    removed = await cache.delete(UnifiedCacheService.product_key(product_id))
    await cache.invalidate_by_pattern("search:*")
    return JSONResponse({"removed": removed})


async def search(request: Request) -> JSONResponse:
    cache = get_cache(request)
    query = request.query_params.get("q", "")
    filters = {k: v for k, v in request.query_params.items() if k != "q"}

    async def run_search():
        await asyncio.sleep(0.2)
        return [
            p
            for p in PRODUCTS.values()
            if query.lower() in p["title"].lower() and all(str(p.get(k)) == v for k, v in filters.items())
        ]

    results = await cache.get_or_set(UnifiedCacheService.search_key(query, filters), run_search, ttl_seconds=120)
    return JSONResponse(results)


async def stats(request: Request) -> JSONResponse:
    return JSONResponse(get_cache(request).get_stats())


@click.command()
@click.option("--port", default=8000, help="Port to listen on for HTTP")
@click.option(
    "--log-level",
    default="INFO",
    help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
)
@click.option("--cleanup-interval", default=300.0, help="Seconds between expired-entry sweeps")
def main(port: int, log_level: str, cleanup_interval: float) -> int:
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    settings = CacheSettings.from_env()
    settings.memory.cleanup_interval_seconds = cleanup_interval

    app = Starlette(
        debug=True,
        routes=[
            Route("/products/{product_id}", get_product, methods=["GET"]),
            Route("/products/{product_id}", invalidate_product, methods=["DELETE"]),
            Route("/search", search),
            Route("/cache/stats", stats),
        ],
        lifespan=cache_lifespan(settings),
    )
    logger.info("Remote cache %s", "enabled" if settings.remote.enabled else "disabled")

    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=port)
    return 0


if __name__ == "__main__":
    main()

"""Listing entrypoint - Load listings once and print a page of the unified view.

Usage:
    python -m vanguard.listing_entrypoint                       # first page, all categories
    python -m vanguard.listing_entrypoint bitcoin               # search term
    python -m vanguard.listing_entrypoint bitcoin Cryptos       # search + category
    python -m vanguard.listing_entrypoint "" Equity 2           # category, page 2
"""

import asyncio
import sys
from typing import List, Optional

from vanguard.core.logging import get_logger
from vanguard.core.session import build_session_store
from vanguard.services.backend_client import BackendClient
from vanguard.services.listing_service import ListingService
from vanguard.services.listing_view import ListingPage
from vanguard.services.unifier import ALL_CATEGORIES, format_amount

logger = get_logger("listing_entrypoint")


def render_page(page: ListingPage) -> List[str]:
    lines = [f"Page {page.page}/{page.total_pages} | {page.total_count} match(es) | categories: {', '.join(page.categories)}"]
    for item in page.items:
        status = "active" if item.is_active else "inactive"
        if item.asset is not None:
            detail = (
                f"min {format_amount(item.asset.min_investment)} | "
                f"return {format_amount(item.asset.expected_return)}% | "
                f"duration {item.asset.duration or '—'}"
            )
        else:
            detail = (
                f"price {format_amount(item.coin.price)} | "
                f"market cap {format_amount(item.coin.market_cap)} | "
                f"in {item.coin.hours}h"
            )
        lines.append(f"{item.id:<12} {item.name} [{item.category or '—'}] {status} | {detail} | risk {item.risk or '—'}")
    return lines


async def show_listings(search: str = "", category: str = ALL_CATEGORIES, page: int = 1) -> Optional[ListingPage]:
    backend = BackendClient()
    service = ListingService(backend, build_session_store())
    try:
        if not await service.refresh():
            logger.error(f"Could not load listings: {service.error}")
            return None
        service.view.set_search(search)
        service.view.set_category(category)
        service.view.set_page(page)
        return service.view.current_page()
    finally:
        service.close()
        await backend.aclose()


def main():
    search = sys.argv[1] if len(sys.argv) > 1 else ""
    category = sys.argv[2] if len(sys.argv) > 2 and sys.argv[2] else ALL_CATEGORIES
    try:
        page = int(sys.argv[3]) if len(sys.argv) > 3 else 1
    except ValueError:
        logger.error(f"Invalid page: {sys.argv[3]}. Must be an integer")
        sys.exit(1)

    result = asyncio.run(show_listings(search, category, page))
    if result is None:
        sys.exit(1)

    for line in render_page(result):
        print(line)
    return result


if __name__ == "__main__":
    main()

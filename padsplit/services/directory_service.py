"""
Metro directory lookups behind a fresh authenticated browser session.

Each call launches its own browser, logs in, reads the directory and tears
the browser down again; nothing is reused between requests.
"""
from typing import List, Optional

from padsplit.models import Credentials, MetroArea, MetroAreaDetail
from padsplit.scrapers.auth import login
from padsplit.scrapers.browser import BrowserSessionManager
from padsplit.scrapers.metro_directory import get_metro_area_detail, list_metro_areas, open_dashboard


class MetroDirectoryService:
    def __init__(self, sessions: Optional[BrowserSessionManager] = None, authenticate=None):
        self.sessions = sessions or BrowserSessionManager()
        self._authenticate = authenticate or login

    async def login_and_list_metros(self, credentials: Credentials) -> List[MetroArea]:
        """Log in and list markets; a successful listing doubles as proof the login worked."""
        async with self.sessions.session() as session:
            page = await session.new_page()
            await self._authenticate(page, credentials.email, credentials.password)
            return await list_metro_areas(page)

    async def fetch_metro_detail(self, credentials: Credentials, metro_id: int | str) -> MetroAreaDetail:
        async with self.sessions.session() as session:
            page = await session.new_page()
            await self._authenticate(page, credentials.email, credentials.password)
            await open_dashboard(page)
            return await get_metro_area_detail(page, metro_id)

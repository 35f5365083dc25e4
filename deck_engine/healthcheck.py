"""Healthcheck service for the resolution engine

Runs a small HTTP server on HEALTHCHECK_PORT that returns JSON status for
the engine: live sessions, sealed outcomes and archive statistics. Stale
sessions are swept every HEALTHCHECK_INTERVAL seconds so abandoned
sessions still reach their timeout outcome.
"""
import asyncio
import logging
import time
from typing import Any, Dict, Optional

from aiohttp import web

from .version import get_version_info


class HealthcheckService:
    def __init__(self, engine, host: str = '0.0.0.0', port: int = 22223, interval: float = 5.0):
        self.engine = engine
        self.host = host
        self.port = port
        self.interval = interval
        self._latest: Dict[str, Any] = {
            'status': 'unknown',
            'last_sweep': None,
            'expired_last_sweep': 0,
        }
        self._task: Optional[asyncio.Task] = None
        self._runner: Optional[web.AppRunner] = None

    def snapshot(self) -> Dict[str, Any]:
        data = dict(self._latest)
        data['engine'] = self.engine.stats()
        if self.engine.database is not None:
            try:
                data['database'] = self.engine.database.get_database_stats()
            except Exception as e:
                logging.exception('Failed to read database stats')
                data['database'] = {'error': str(e)}
        data.update(get_version_info())
        return data

    def sweep(self) -> int:
        expired = self.engine.expire_stale_sessions()
        self._latest['last_sweep'] = int(time.time())
        self._latest['expired_last_sweep'] = len(expired)
        self._latest['status'] = 'ok'
        return len(expired)

    async def _background_sweep(self):
        while True:
            try:
                self.sweep()
            except Exception as e:
                logging.exception('Stale session sweep failed')
                self._latest['status'] = 'error'
                self._latest['error'] = str(e)
            await asyncio.sleep(self.interval)

    async def status_handler(self, request):
        return web.json_response(self.snapshot())

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get('/health', self.status_handler)
        return app

    async def start(self):
        self._task = asyncio.ensure_future(self._background_sweep())
        self._runner = web.AppRunner(self.make_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, host=self.host, port=self.port)
        await site.start()
        logging.info(f'Healthcheck HTTP server listening on {self.host}:{self.port}, sweeping every {self.interval}s')

    async def stop(self):
        if self._task:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
        if self._runner:
            await self._runner.cleanup()


async def start_healthcheck_in_background(engine, host: str = '0.0.0.0', port: int = 22223) -> HealthcheckService:
    svc = HealthcheckService(engine, host=host, port=port)
    await svc.start()
    return svc

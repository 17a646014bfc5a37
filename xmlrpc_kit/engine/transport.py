import logging
from typing import Dict, Optional

import httpx

from xmlrpc_kit.core.errors import TransportError
from xmlrpc_kit.engine.config import ClientConfig

# 전송 계층에서 발생하는 모든 오류는 TransportError로 감싸집니다.
TRANSPORT_ERRORS = (httpx.HTTPError, httpx.InvalidURL, OSError)


def _request_headers(config: ClientConfig) -> Dict[str, str]:
    headers = {
        'Content-Type': 'text/xml',
        'Accept': 'text/xml',
        'User-Agent': config.user_agent,
    }
    headers.update(config.headers)
    return headers


class HttpTransport:
    """XML-RPC 요청 문서를 HTTP POST로 전송하는 동기 전송 계층"""

    def __init__(self, config: ClientConfig, client: Optional[httpx.Client] = None):
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=config.timeout)
        self.logger = logging.getLogger(f"Transport-{config.url}")

    def post(self, body: bytes) -> bytes:
        """요청 본문을 전송하고 응답 본문을 반환합니다."""
        try:
            response = self._client.post(self.config.url, content=body,
                                         headers=_request_headers(self.config),
                                         timeout=self.config.timeout)
            response.raise_for_status()
            content = response.content
        except TRANSPORT_ERRORS as e:
            self.logger.error(f"HTTP exchange with {self.config.url} failed: {e}")
            raise TransportError.wrap(e) from e

        self.logger.debug(f"HTTP {response.status_code}: received {len(content)} bytes")
        return content

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class AsyncHttpTransport:
    """asyncio 기반 전송 계층 (httpx.AsyncClient)"""

    def __init__(self, config: ClientConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.timeout)
        self.logger = logging.getLogger(f"AsyncTransport-{config.url}")

    async def post(self, body: bytes) -> bytes:
        try:
            response = await self._client.post(self.config.url, content=body,
                                               headers=_request_headers(self.config),
                                               timeout=self.config.timeout)
            response.raise_for_status()
            content = response.content
        except TRANSPORT_ERRORS as e:
            self.logger.error(f"HTTP exchange with {self.config.url} failed: {e}")
            raise TransportError.wrap(e) from e

        self.logger.debug(f"HTTP {response.status_code}: received {len(content)} bytes")
        return content

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

import logging
from typing import Any, Optional, Union

from xmlrpc_kit.core.errors import RequestError
from xmlrpc_kit.core.models import Fault, Value, value_items
from xmlrpc_kit.core.xml_builder import build_request
from xmlrpc_kit.core.xml_parser import parse_response
from xmlrpc_kit.engine.config import ClientConfig
from xmlrpc_kit.engine.transport import AsyncHttpTransport, HttpTransport


class Client:
    """
    XML-RPC 호출 클라이언트.

    `call()` builds a `<methodCall>` document, sends it through the transport
    and decodes the `<methodResponse>`. A `<fault>` answer is returned as a
    `Fault`; only transport and decoding failures raise (`RequestError`).
    """

    def __init__(self, config: ClientConfig, transport: Optional[HttpTransport] = None):
        self.config = config
        # 직접 생성한 transport만 close()에서 닫습니다.
        self._owns_transport = transport is None
        self.transport = transport or HttpTransport(config)
        self.logger = logging.getLogger(f"XMLRPC-{config.url}")

    def call(self, method_name: str, *params: Any) -> Union[Value, Fault]:
        """원격 메소드를 호출하고 반환값 또는 Fault를 돌려줍니다."""
        body = build_request(method_name, value_items(params)).encode('utf-8')
        self.logger.debug(f"SEND: {method_name} with {len(params)} params ({len(body)} bytes)")

        try:
            payload = self.transport.post(body)
            result = parse_response(payload, max_depth=self.config.max_depth)
        except RequestError as e:
            self.logger.error(f"Call to {method_name} failed: {e}")
            raise

        if isinstance(result, Fault):
            self.logger.warning(f"RECV: {method_name} returned fault {result.fault_code}: {result.fault_string}")
        else:
            self.logger.debug(f"RECV: {method_name} returned <{result.tag}>")
        return result

    def close(self) -> None:
        if self._owns_transport:
            self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class AsyncClient:
    """asyncio 환경용 XML-RPC 클라이언트"""

    def __init__(self, config: ClientConfig, transport: Optional[AsyncHttpTransport] = None):
        self.config = config
        self._owns_transport = transport is None
        self.transport = transport or AsyncHttpTransport(config)
        self.logger = logging.getLogger(f"XMLRPC-{config.url}")

    async def call(self, method_name: str, *params: Any) -> Union[Value, Fault]:
        body = build_request(method_name, value_items(params)).encode('utf-8')
        self.logger.debug(f"SEND: {method_name} with {len(params)} params ({len(body)} bytes)")

        try:
            payload = await self.transport.post(body)
            result = parse_response(payload, max_depth=self.config.max_depth)
        except RequestError as e:
            self.logger.error(f"Call to {method_name} failed: {e}")
            raise

        if isinstance(result, Fault):
            self.logger.warning(f"RECV: {method_name} returned fault {result.fault_code}: {result.fault_string}")
        else:
            self.logger.debug(f"RECV: {method_name} returned <{result.tag}>")
        return result

    async def close(self) -> None:
        if self._owns_transport:
            await self.transport.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

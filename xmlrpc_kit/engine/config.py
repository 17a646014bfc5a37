import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict

from xmlrpc_kit.core.xml_parser import DEFAULT_MAX_DEPTH

DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "xmlrpc_kit/0.1"


@dataclass
class ClientConfig:
    """
    Settings for one XML-RPC endpoint.

    Attributes:
        url (str): The endpoint URL requests are POSTed to.
        timeout (float): HTTP timeout in seconds.
        user_agent (str): Value of the User-Agent header.
        headers (dict): Extra HTTP headers sent with every request.
        max_depth (int): Deepest struct/array nesting accepted in responses.
    """
    url: str
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    headers: Dict[str, str] = field(default_factory=dict)
    max_depth: int = DEFAULT_MAX_DEPTH

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        """딕셔너리에서 설정을 읽습니다. 알 수 없는 키는 무시합니다."""
        if not data.get('url'):
            raise ValueError("Client config requires a 'url'")
        known = {f.name for f in fields(cls)}
        settings = {key: value for key, value in data.items() if key in known}
        if 'timeout' in settings:
            settings['timeout'] = float(settings['timeout'])
        if 'max_depth' in settings:
            settings['max_depth'] = int(settings['max_depth'])
        settings['headers'] = dict(settings.get('headers') or {})
        return cls(**settings)

    @classmethod
    def load(cls, config_path: str) -> "ClientConfig":
        """JSON 설정 파일을 읽어 ClientConfig를 생성합니다."""
        path = Path(config_path)
        try:
            with path.open('r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            raise ValueError(f"Client config file not found at '{config_path}'") from None
        except json.JSONDecodeError as e:
            raise ValueError(f"Could not decode JSON from '{config_path}': {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Client config in '{config_path}' must be a JSON object")
        return cls.from_dict(data)

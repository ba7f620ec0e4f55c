# adaptcoder/core/oracle.py
"""
语言模型接口 (IOracle) 及基于 httpx 的 OpenAI 兼容实现。
"""

import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx


class OracleError(Exception):
    """模型调用失败：网络错误、超时、HTTP 错误或响应格式不对"""


class IOracle(ABC):
    """文本进、文本出的模型接口"""

    @abstractmethod
    def complete(self, prompt: str, temperature: float = 0.7, max_tokens: int = 2000) -> str:
        pass


class HttpOracle(IOracle):
    """调用 OpenAI 兼容的 /chat/completions 接口"""

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: Optional[str] = None,
        timeout: float = 60,
        client: Optional[httpx.Client] = None,
    ):
        self.model = model
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), headers=headers, timeout=timeout)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'HttpOracle':
        oracle_cfg = config.get("oracle", {})
        api_key_env = oracle_cfg.get("api_key_env")
        api_key = os.environ.get(api_key_env) if api_key_env else None
        return cls(
            base_url=oracle_cfg["base_url"],
            model=oracle_cfg["model"],
            api_key=api_key,
            timeout=oracle_cfg.get("timeout", 60),
        )

    def complete(self, prompt: str, temperature: float = 0.7, max_tokens: int = 2000) -> str:
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        try:
            r = self._client.post("/chat/completions", json=payload)
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPError as e:
            raise OracleError(f"Oracle request failed: {e}") from e
        except ValueError as e:
            raise OracleError(f"Oracle returned invalid JSON: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise OracleError(f"Unexpected oracle response shape: {e}") from e
        if not isinstance(content, str):
            raise OracleError("Oracle response content is not text")
        return content

    def close(self):
        self._client.close()

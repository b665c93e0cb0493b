import functools
import os
import time
from typing import Any, Callable, Dict, List, TypeVar
from urllib.parse import urlparse

from dotenv import load_dotenv
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ProviderConnectionError
from web3.providers.rpc import HTTPProvider
from web3.types import RPCResponse

from utils.chains import Chain
from utils.config import Config, ConfigError
from utils.logging import get_logger

load_dotenv()

logger = get_logger("utils.web3")

T = TypeVar("T")  # Generic type for return values


def retry_with_provider_rotation(func):
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        errors = {}
        for attempt in range(self.max_retries * len(self.provider_urls)):
            try:
                return func(self, *args, **kwargs)
            except Exception as e:
                current_url = self.endpoint_uri
                errors[current_url] = str(e)
                logger.warning("Request failed on %s: %s", current_url, e)
                time.sleep(self.backoff_factor * (2**attempt))
                self._rotate_provider()

        raise ProviderConnectionError(
            "All providers failed. Errors:\n" + "\n".join(f"{url}: {err}" for url, err in errors.items())
        )

    return wrapper


class RetryProviders:
    """Base class for provider retry functionality"""

    def __init__(self, provider_urls: List[str], max_retries: int = 3, backoff_factor: float = 1):
        if not provider_urls:
            raise ConfigError("No valid provider URLs configured")
        self.provider_urls = provider_urls
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.endpoint_uri = provider_urls[0]

    def _rotate_provider(self) -> None:
        """Switch to the next provider in the list"""
        current_index = self.provider_urls.index(self.endpoint_uri)
        next_index = (current_index + 1) % len(self.provider_urls)
        self.endpoint_uri = self.provider_urls[next_index]
        if len(self.provider_urls) > 1:
            logger.info("Switching to provider: %s", self.endpoint_uri)


def validate_urls(urls: List[str]) -> List[str]:
    """Drop empty and malformed provider URLs, keeping order."""
    valid_urls = []
    for url in urls:
        if not url:
            continue
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            logger.warning("Invalid URL format: %s", url)
            continue
        if url not in valid_urls:
            valid_urls.append(url)
    return valid_urls


class MultiHTTPProvider(HTTPProvider, RetryProviders):
    def __init__(
        self,
        providers: List[str],
        request_kwargs: Dict[str, Any] = None,
        max_retries: int = 3,
        backoff_factor: float = 1,
    ):
        providers = validate_urls(providers)
        RetryProviders.__init__(self, providers, max_retries, backoff_factor)
        self.request_kwargs = request_kwargs or {}
        self.request_kwargs.setdefault("timeout", Config.get_request_timeout())
        super().__init__(endpoint_uri=self.endpoint_uri, request_kwargs=self.request_kwargs)

    @retry_with_provider_rotation
    def make_request(self, method: str, params: List[Any]) -> RPCResponse:
        return super().make_request(method, params)


class Web3Client:
    def __init__(self, chain: Chain):
        self.chain = chain
        self.provider_urls = self._get_provider_urls()
        self.w3 = self._initialize_web3()

    def _initialize_web3(self) -> Web3:
        """Initialize Web3 with multi-provider setup"""
        provider = MultiHTTPProvider(
            providers=self.provider_urls,
            max_retries=Config.get_retry_count(),
            backoff_factor=Config.get_backoff_factor(),
        )
        return Web3(provider)

    def _get_provider_urls(self) -> List[str]:
        """Get provider URLs for the chain from environment variables"""
        urls = []
        env_key = f"PROVIDER_URL_{self.chain.name.upper()}"
        url = os.getenv(env_key)
        if url:
            urls.append(url)

        # Additional providers
        for i in range(1, 4):
            url = os.getenv(f"{env_key}_{i}")
            if url:
                urls.append(url)

        # Single node setups only export NODE_API_URL
        url = os.getenv("NODE_API_URL")
        if url:
            urls.append(url)

        urls = validate_urls(urls)
        if not urls:
            raise ConfigError(f"No providers found for chain {self.chain.name}")
        return urls

    def execute(self, operation: Callable[..., T], *args, **kwargs) -> T:
        """Execute any Web3 operation, wrapping failures as connection errors"""
        try:
            return operation(*args, **kwargs)
        except ProviderConnectionError:
            raise
        except Exception as e:
            raise ProviderConnectionError(f"Operation failed on {self.chain.name}: {e}") from e

    @property
    def eth(self):
        """Access to eth namespace"""
        return self.w3.eth

    def get_contract(self, address: str, abi: List[Dict]) -> Contract:
        """Get contract instance"""
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def block_number(self) -> int:
        return self.execute(lambda: self.w3.eth.block_number)


class ChainManager:
    _instances: Dict[Chain, Web3Client] = {}

    @classmethod
    def get_client(cls, chain: Chain) -> Web3Client:
        """Get or create Web3Client instance for specified chain"""
        if chain not in cls._instances:
            cls._instances[chain] = Web3Client(chain)
        return cls._instances[chain]

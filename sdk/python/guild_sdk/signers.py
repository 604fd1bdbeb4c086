import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount

from .exceptions import SigningRejected

logger = logging.getLogger(__name__)

SignatureLike = Union[str, bytes]
Signer = Callable[[str], Union[SignatureLike, Awaitable[SignatureLike]]]


def _wait_for(awaitable: Awaitable[Any]) -> Any:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        async def _wrap():
            return await awaitable
        return asyncio.run(_wrap())

    if inspect.iscoroutine(awaitable):
        awaitable.close()
    raise SigningRejected(
        "Cannot wait for an asynchronous signer from inside a running event loop."
    )


def resolve_signature(sign: Signer, message: str) -> str:
    """
    Obtain a signature for a message from a caller-supplied signer.

    The signer may return the signature directly or an awaitable resolving
    to it. Byte signatures are hex encoded with a 0x prefix; string
    signatures are returned unchanged.

    Raises:
        SigningRejected: If the signer raises, returns nothing, or returns
            an unsupported type.
    """
    try:
        result = sign(message)
        if inspect.isawaitable(result):
            result = _wait_for(result)
    except SigningRejected:
        raise
    except Exception as e:
        logger.warning("Signer failed: %s", e.__class__.__name__)
        raise SigningRejected(f"Signing failed: {e}", cause=e) from e

    if not isinstance(result, (str, bytes, bytearray)):
        if result is None:
            raise SigningRejected("Signer returned no signature.")
        raise SigningRejected(f"Unsupported signature type: {type(result).__name__}")
    if len(result) == 0:
        raise SigningRejected("Signer returned an empty signature.")
    if isinstance(result, str):
        return result
    return "0x" + bytes(result).hex()


class EthAccountSigner:
    """
    Signs messages with an Ethereum account using EIP-191 personal_sign,
    the scheme browser wallets apply to plain text messages.
    """

    def __init__(self, account: Optional[LocalAccount] = None):
        if account is None:
            self._account = Account.create()
        else:
            self._account = account

    @classmethod
    def from_key(cls, private_key: str) -> "EthAccountSigner":
        """Load an account from a hex private key."""
        return cls(Account.from_key(private_key))

    @classmethod
    def generate(cls) -> "EthAccountSigner":
        """Create a signer backed by a fresh random account."""
        return cls()

    @property
    def address(self) -> str:
        """Checksummed address of the account."""
        return self._account.address

    def sign(self, message: str) -> str:
        signed = self._account.sign_message(encode_defunct(text=message))
        return "0x" + bytes(signed.signature).hex()

    def __call__(self, message: str) -> str:
        return self.sign(message)

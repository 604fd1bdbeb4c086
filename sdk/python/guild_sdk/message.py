import json
from typing import Dict, Any, Optional

from cryptography.hazmat.primitives import hashes

from .signers import Signer, resolve_signature

SIGNING_PREAMBLE = "Please sign this message to verify your request!"


def canonical_payload(payload: Optional[Dict[str, Any]]) -> bytes:
    """
    Serialize an action payload to its canonical byte form.

    Args:
        payload: JSON-compatible request payload. None is treated as {}.

    Returns:
        bytes: UTF-8 encoded JSON with sorted keys and no whitespace.
    """
    canonical_json = json.dumps(
        payload or {},
        sort_keys=True,
        separators=(',', ':'),
        ensure_ascii=False
    )
    return canonical_json.encode('utf-8')


def payload_hash(payload: Optional[Dict[str, Any]]) -> str:
    """SHA-256 of the canonical payload as a 0x-prefixed hex string."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(canonical_payload(payload))
    return "0x" + digest.finalize().hex()


def create_signable_message(
    address: str,
    method: str,
    path: str,
    payload: Optional[Dict[str, Any]],
    nonce: Optional[str] = None
) -> str:
    """
    Construct the deterministic message a wallet signs for a mutating call.

    The server rebuilds the same string from the request it receives
    (validation.address, the HTTP method and path, the payload and the
    optional nonce), so no field here may depend on local state or time.

    Args:
        address: The caller's wallet address, used verbatim.
        method: HTTP method of the action, e.g. 'POST'.
        path: API path of the action, e.g. '/guild/join'.
        payload: The action payload sent in the request body.
        nonce: Optional caller-supplied nonce echoed back in the request.

    Returns:
        str: Newline separated message.
    """
    lines = [
        SIGNING_PREAMBLE,
        f"Address: {address}",
        f"Action: {method.upper()} {path}",
        f"Hash: {payload_hash(payload)}",
    ]
    if nonce is not None:
        lines.append(f"Nonce: {nonce}")
    return "\n".join(lines)


def create_authenticated_request(
    address: str,
    method: str,
    path: str,
    payload: Optional[Dict[str, Any]],
    sign: Signer,
    nonce: Optional[str] = None
) -> Dict[str, Any]:
    """
    Sign an action payload and wrap it in the request body the API expects.

    Args:
        address: The caller's wallet address.
        method: HTTP method of the action.
        path: API path of the action.
        payload: The action payload.
        sign: Signer callable producing a signature for the message.
        nonce: Optional nonce bound into the signed message.

    Returns:
        Dict: {"payload": ..., "validation": {"address", "addressSignedMessage"[, "nonce"]}}

    Raises:
        SigningRejected: If the signer fails; no request should be sent.
    """
    payload = payload or {}
    message = create_signable_message(address, method, path, payload, nonce)
    signature = resolve_signature(sign, message)

    validation = {
        "address": address,
        "addressSignedMessage": signature
    }
    if nonce is not None:
        validation["nonce"] = nonce

    return {
        "payload": payload,
        "validation": validation
    }

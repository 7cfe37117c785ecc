"""Session key derivation from a wallet signature over a fixed challenge."""
from __future__ import annotations

import logging

from eth_utils import keccak

from ..errors import ChainReadError, HushError, SessionNotEstablishedError
from ..interfaces.chain import ChainClient
from ..interfaces.signer import Signer
from ..models import SessionKey

logger = logging.getLogger(__name__)

CHALLENGE_TEMPLATE = "Hush Privacy Session v1\nChain:{chain_id}\nAddress:{address}"


def challenge_message(chain_id: int, address: str) -> str:
    return CHALLENGE_TEMPLATE.format(chain_id=chain_id, address=address.lower())


class SessionKeyDeriver:
    """Turn a signature over the session challenge into a 32-byte key.

    The same wallet always re-derives the same key for a chain, so a lost
    local store is recoverable by signing again.
    """

    def __init__(self, chain_client: ChainClient) -> None:
        self._chain = chain_client

    async def derive(self, signer: Signer) -> SessionKey:
        try:
            chain_id = await self._chain.get_chain_id()
        except ChainReadError as e:
            raise SessionNotEstablishedError(
                f"Session not established: could not read chain id ({e})"
            ) from e

        message = challenge_message(chain_id, signer.address)
        try:
            signature = await signer.sign_message(message)
        except HushError:
            raise
        except Exception as e:
            raise SessionNotEstablishedError(
                f"Session not established: signature request was rejected ({e})"
            ) from e

        logger.debug("Derived session key for %s on chain %s", signer.address, chain_id)
        return SessionKey(chain_id=chain_id, key=keccak(signature))

"""
Algorand algod client singleton for TestNet interaction.

The underlying AlgodClient is built on first use, so importing this module
never touches the network.
"""
from algosdk.v2client import algod
from config import settings
import logging

logger = logging.getLogger(__name__)


class AlgorandClient:
    """Singleton wrapper exposing the handful of algod calls this service needs."""

    _instance = None
    _client = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(AlgorandClient, cls).__new__(cls)
        return cls._instance

    def _initialize_client(self):
        """Initialize the Algorand algod client."""
        self._client = algod.AlgodClient(
            algod_token=settings.algorand_algod_token,
            algod_address=settings.algorand_algod_address,
        )
        logger.info(f"Algod client configured for {settings.algorand_algod_address}")

    @property
    def client(self) -> algod.AlgodClient:
        """Get the algod client instance."""
        if self._client is None:
            self._initialize_client()
        return self._client

    def status(self) -> dict:
        return self.client.status()

    def get_suggested_params(self):
        """Fetch suggested transaction parameters from TestNet."""
        try:
            return self.client.suggested_params()
        except Exception as e:
            logger.error(f"Error fetching suggested params: {e}")
            raise

    def pending_transaction_info(self, transaction_id: str) -> dict:
        """
        Look up a transaction by ID.

        algod answers for transactions still in the pool and for recently
        confirmed ones (with "confirmed-round" set). Unknown IDs raise
        algosdk.error.AlgodHTTPError (404).
        """
        return self.client.pending_transaction_info(transaction_id)

    def account_info(self, address: str) -> dict:
        return self.client.account_info(address)


# Global client instance
algorand_client = AlgorandClient()

# backend/utils/midtrans_client.py
import base64
import httpx
import logging
from urllib.parse import urljoin
from config import settings

logger = logging.getLogger(__name__)

class MidtransError(Exception):
    def __init__(self, message, status_code: int = 500, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

class MidtransClient:
    def __init__(self, server_key: str = None, base_url: str = None, transport: httpx.AsyncBaseTransport = None):
        # The server key stays on the backend; clients only ever see snap tokens
        self.server_key = server_key if server_key is not None else settings.MIDTRANS_SERVER_KEY
        self.base_url = base_url or settings.midtrans_base_url
        self.transport = transport

    def _auth_header(self) -> str:
        raw = f"{self.server_key}:".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    async def create_transaction(self, order_id: str, gross_amount, item_details: list, customer_details: dict) -> dict:
        # Request a Snap token for the vendor-hosted payment popup
        url = urljoin(self.base_url, "/snap/v1/transactions")
        body = {
            "transaction_details": {"order_id": order_id, "gross_amount": gross_amount},
            "item_details": [
                {
                    "id": str(item.get("id")),
                    "price": item.get("price"),
                    "quantity": item.get("quantity"),
                    "name": item.get("name"),
                }
                for item in item_details
            ],
            "customer_details": customer_details,
        }
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": self._auth_header(),
        }
        async with httpx.AsyncClient(transport=self.transport) as client:
            try:
                response = await client.post(url, json=body, headers=headers)
            except httpx.RequestError as e:
                logger.error(f"Midtrans request error: {e}")
                raise

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 400:
            messages = data.get("error_messages") if isinstance(data, dict) else None
            logger.error(f"Midtrans API error ({response.status_code}): {messages or response.text}")
            raise MidtransError(
                messages or "Failed to create Midtrans transaction",
                status_code=response.status_code,
                payload=data,
            )

        return {"snap_token": data.get("token"), "redirect_url": data.get("redirect_url")}

midtrans_client = MidtransClient()

"""
Baidu VAT Invoice OCR Client.

Wraps the client-credential token exchange and the VAT invoice
recognition endpoint. The client returns the raw response body; turning
it into a record is the OCRResultNormalizer's job.

Usage:
    client = BaiduOCRClient(config)
    raw_json = client.recognize(image_bytes)
"""

import base64
from datetime import datetime, timedelta
from typing import Optional

import requests

from config import ConfigurationManager
from invoice_archive.utils.exceptions import (
    EmptyInputError,
    OCRAuthenticationError,
    OCRRequestError,
)
from invoice_archive.utils.logger import get_logger

logger = get_logger(__name__)


class BaiduOCRClient:
    """
    Client for Baidu's VAT invoice recognition API.

    Attributes:
        api_key: Client id used for the token exchange
        secret_key: Client secret used for the token exchange
        token_url: OAuth token endpoint
        invoice_url: Recognition endpoint
        timeout: Request timeout in seconds

    Example:
        >>> client = BaiduOCRClient(config)
        >>> raw = client.recognize(Path("scan.jpg").read_bytes())
    """

    PROVIDER = "baidu"
    # Tokens are refreshed this long before the provider says they expire
    EXPIRY_MARGIN = timedelta(seconds=60)

    def __init__(self, config: ConfigurationManager) -> None:
        self.api_key = config.get("ocr.api_key", "")
        self.secret_key = config.get("ocr.secret_key", "")
        self.token_url = config.get("ocr.token_url")
        self.invoice_url = config.get("ocr.invoice_url")
        self.timeout = config.get("ocr.timeout", 30)

        self._access_token: Optional[str] = None
        self._token_expiration: Optional[datetime] = None

        logger.debug(f"BaiduOCRClient initialized (timeout={self.timeout}s)")

    def get_access_token(self) -> str:
        """
        Return a cached access token, exchanging credentials when needed.

        Raises:
            OCRAuthenticationError: If the credentials are missing or the
                exchange fails.
        """
        if self._access_token and self._token_expiration and datetime.now() < self._token_expiration:
            return self._access_token

        if not self.api_key or not self.secret_key:
            raise OCRAuthenticationError(self.PROVIDER, "ocr.api_key and ocr.secret_key must be set")

        params = {
            "grant_type": "client_credentials",
            "client_id": self.api_key,
            "client_secret": self.secret_key,
        }

        try:
            response = requests.post(self.token_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            token_data = response.json()
        except requests.exceptions.RequestException as e:
            raise OCRAuthenticationError(self.PROVIDER, str(e))
        except ValueError as e:
            raise OCRAuthenticationError(self.PROVIDER, f"invalid token response: {e}")

        access_token = token_data.get("access_token")
        if not access_token:
            raise OCRAuthenticationError(
                self.PROVIDER,
                token_data.get("error_description") or "response has no access_token"
            )

        expires_in = int(token_data.get("expires_in", 0))
        self._access_token = access_token
        self._token_expiration = datetime.now() + timedelta(seconds=expires_in) - self.EXPIRY_MARGIN

        logger.info("Obtained new OCR access token")
        return access_token

    def recognize(self, image_bytes: bytes) -> bytes:
        """
        Send an image to the VAT invoice endpoint.

        Args:
            image_bytes: Encoded image (JPEG/PNG).

        Returns:
            Raw response body.

        Raises:
            EmptyInputError: If ``image_bytes`` is empty.
            OCRAuthenticationError: If no access token can be obtained.
            OCRRequestError: On timeout, connection failure or a non-2xx
                status; carries the provider's response body.
        """
        if not image_bytes:
            raise EmptyInputError("image")

        access_token = self.get_access_token()
        data = {"image": base64.b64encode(image_bytes).decode("ascii")}

        try:
            response = requests.post(
                self.invoice_url,
                params={"access_token": access_token},
                data=data,
                timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            raise OCRRequestError(f"timed out after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            raise OCRRequestError(str(e))

        if not response.ok:
            logger.error(f"OCR request returned HTTP {response.status_code}")
            raise OCRRequestError(
                f"HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text
            )

        return response.content

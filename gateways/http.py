"""
HTTP implementation of the backend gateway.

Talks JSON over httpx to the storefront REST API. Transport failures
become NetworkUnavailableError; non-2xx answers (and 2xx answers that
carry "success": false) become GatewayRejectedError with the backend's
message when it sent one, and so do 2xx bodies that cannot be parsed.
"""

import logging
from typing import Any, Callable, Optional, TypeVar

import httpx
from pydantic import ValidationError as PydanticValidationError

from shared.exceptions import GatewayRejectedError, NetworkUnavailableError
from shared.models import AddressRecord, UserRecord

from .models import (
    AddressFields,
    ImageUpload,
    IssuedSession,
    ProfileChanges,
    RegistrationReceipt,
    TokenPair,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class HttpBackendGateway:
    """
    Backend gateway backed by an httpx.AsyncClient.

    The client is created on construction and must be closed with
    aclose() (or by using the gateway as an async context manager).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the HTTP gateway.

        Args:
            base_url: Root URL of the storefront API
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpBackendGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        access_token: Optional[str] = None,
        json: Optional[dict[str, Any]] = None,
        files: Optional[dict[str, Any]] = None,
        parse: Optional[Callable[[dict[str, Any]], T]] = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON body.

        When `parse` is given its result is returned instead. A body that
        parse cannot read is reported as a GatewayRejectedError carrying
        the response status.
        """
        headers = {}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        try:
            response = await self._client.request(
                method, path, headers=headers, json=json, files=files
            )
        except httpx.TimeoutException:
            logger.warning(f"{operation}: request to {path} timed out")
            raise NetworkUnavailableError("The request timed out", operation=operation)
        except httpx.TransportError as e:
            logger.warning(f"{operation}: transport error for {path}: {e}")
            raise NetworkUnavailableError(operation=operation)

        data = self._decode(response)

        if response.is_error:
            message = data.get("message") or f"Request failed with status {response.status_code}"
            raise GatewayRejectedError(message, status_code=response.status_code)

        if data.get("success") is False:
            raise GatewayRejectedError(
                data.get("message") or "Request was rejected",
                status_code=response.status_code,
            )

        if parse is None:
            return data
        try:
            return parse(data)
        except (KeyError, TypeError, PydanticValidationError) as e:
            logger.warning(f"{operation}: unexpected response body from {path}: {e}")
            raise GatewayRejectedError(
                "Unexpected response from server", status_code=response.status_code
            ) from e

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _with_access_token(data: dict[str, Any]) -> dict[str, Any]:
        # Older deployments return the access token as "token"
        if "accessToken" not in data and "token" in data:
            return {**data, "accessToken": data["token"]}
        return data

    @classmethod
    def _issued_session(cls, data: dict[str, Any]) -> IssuedSession:
        return IssuedSession.model_validate(cls._with_access_token(data))

    @classmethod
    def _token_pair(cls, data: dict[str, Any]) -> TokenPair:
        return TokenPair.model_validate(cls._with_access_token(data))

    @staticmethod
    def _user(data: dict[str, Any]) -> UserRecord:
        return UserRecord.model_validate(data["user"])

    @staticmethod
    def _address(data: dict[str, Any]) -> AddressRecord:
        return AddressRecord.model_validate(data["address"])

    @staticmethod
    def _addresses(data: dict[str, Any]) -> list[AddressRecord]:
        return [AddressRecord.model_validate(a) for a in data["addresses"]]

    @staticmethod
    def _avatar_url(data: dict[str, Any]) -> str:
        url = data["avatarUrl"]
        if not isinstance(url, str):
            raise TypeError("avatarUrl is not a string")
        return url

    # Identity

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
    ) -> RegistrationReceipt:
        payload = {
            "email": email,
            "password": password,
            "firstName": first_name,
            "lastName": last_name,
        }
        if phone:
            payload["phone"] = phone
        return await self._request(
            "register",
            "POST",
            "/auth/register",
            json=payload,
            parse=RegistrationReceipt.model_validate,
        )

    async def verify_otp(self, user_id: str, code: str) -> IssuedSession:
        return await self._request(
            "verify_otp",
            "POST",
            "/auth/verify-otp",
            json={"userId": user_id, "otp": code},
            parse=self._issued_session,
        )

    async def resend_otp(self, user_id: str) -> None:
        await self._request("resend_otp", "POST", "/auth/resend-otp", json={"userId": user_id})

    async def login(self, email: str, password: str) -> IssuedSession:
        return await self._request(
            "login",
            "POST",
            "/auth/login",
            json={"email": email, "password": password},
            parse=self._issued_session,
        )

    async def logout(self, access_token: str) -> None:
        await self._request("logout", "POST", "/auth/logout", access_token=access_token)

    async def refresh_token(self, refresh_token: str) -> TokenPair:
        return await self._request(
            "refresh_token",
            "POST",
            "/auth/refresh-token",
            json={"refreshToken": refresh_token},
            parse=self._token_pair,
        )

    async def forgot_password(self, email: str) -> None:
        await self._request(
            "forgot_password", "POST", "/auth/forgot-password", json={"email": email}
        )

    async def reset_password(self, reset_token: str, new_password: str) -> None:
        await self._request(
            "reset_password",
            "POST",
            "/auth/reset-password",
            json={"token": reset_token, "newPassword": new_password},
        )

    async def change_password(
        self, access_token: str, current_password: str, new_password: str
    ) -> None:
        await self._request(
            "change_password",
            "POST",
            "/auth/change-password",
            access_token=access_token,
            json={"currentPassword": current_password, "newPassword": new_password},
        )

    # Profile

    async def get_profile(self, access_token: str) -> UserRecord:
        return await self._request(
            "get_profile",
            "GET",
            "/user/profile",
            access_token=access_token,
            parse=self._user,
        )

    async def update_profile(
        self, access_token: str, changes: ProfileChanges
    ) -> UserRecord:
        return await self._request(
            "update_profile",
            "PUT",
            "/user/profile",
            access_token=access_token,
            json=changes.to_wire(),
            parse=self._user,
        )

    async def update_avatar(self, access_token: str, image: ImageUpload) -> str:
        return await self._request(
            "update_avatar",
            "POST",
            "/user/profile/avatar",
            access_token=access_token,
            files={"avatar": (image.filename, image.data, image.content_type)},
            parse=self._avatar_url,
        )

    async def delete_account(self, access_token: str, password: str) -> None:
        # httpx.request() allows a JSON body on DELETE
        await self._request(
            "delete_account",
            "DELETE",
            "/user/account",
            access_token=access_token,
            json={"password": password},
        )

    # Addresses

    async def list_addresses(self, access_token: str) -> list[AddressRecord]:
        return await self._request(
            "list_addresses",
            "GET",
            "/user/addresses",
            access_token=access_token,
            parse=self._addresses,
        )

    async def get_address(self, access_token: str, address_id: str) -> AddressRecord:
        return await self._request(
            "get_address",
            "GET",
            f"/user/addresses/{address_id}",
            access_token=access_token,
            parse=self._address,
        )

    async def add_address(
        self, access_token: str, address: AddressFields
    ) -> AddressRecord:
        return await self._request(
            "add_address",
            "POST",
            "/user/addresses",
            access_token=access_token,
            json=address.to_wire(),
            parse=self._address,
        )

    async def update_address(
        self, access_token: str, address_id: str, address: AddressFields
    ) -> AddressRecord:
        return await self._request(
            "update_address",
            "PUT",
            f"/user/addresses/{address_id}",
            access_token=access_token,
            json=address.to_wire(),
            parse=self._address,
        )

    async def delete_address(self, access_token: str, address_id: str) -> None:
        await self._request(
            "delete_address",
            "DELETE",
            f"/user/addresses/{address_id}",
            access_token=access_token,
        )

    async def set_default_address(self, access_token: str, address_id: str) -> None:
        await self._request(
            "set_default_address",
            "PUT",
            f"/user/addresses/{address_id}/default",
            access_token=access_token,
        )

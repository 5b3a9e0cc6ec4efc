# Overview: HTTP client for the storefront API and the client-side store cache.

"""
ApiClient wraps httpx with bearer-token headers and one helper per public
operation. Non-2xx responses raise ApiError carrying the status code and
the server's {"error": ...} message.

StoreCache holds the last-fetched slices (catalog, orders, notifications,
current user). The only way a slice changes is refresh(name), which
re-fetches it and replaces it wholesale; invalidate(name) drops it so the
next get() fetches again. Mutating helpers refresh exactly the slices they
affect instead of patching cached data in place.
"""

from __future__ import annotations

import base64
from typing import Any, Callable, Dict, Optional

import httpx


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class ApiClient:
    """HTTP client wrapper with authentication and convenience methods."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)
        self.token: Optional[str] = None
        self.current_user: Optional[Dict] = None

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _headers(self) -> Dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self.client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.TimeoutException as e:
            raise ApiError(0, f"Request timed out: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.is_error:
            message = data.get("error") if isinstance(data, dict) else None
            raise ApiError(response.status_code, message or response.reason_phrase)
        return data

    def get(self, path: str, params: Optional[Dict] = None) -> Dict[str, Any]:
        return self._request("GET", path, params=params)

    def post(self, path: str, json: Optional[Dict] = None) -> Dict[str, Any]:
        return self._request("POST", path, json=json or {})

    # ------------------------------------------------------------------ auth

    def _adopt_session(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self.token = data.get("token")
        self.current_user = data.get("user")
        return data

    def signup(self, name: str, phone_number: str, pin: str) -> Dict[str, Any]:
        return self._adopt_session(self.post("/api/auth/signup", {
            "name": name, "phone_number": phone_number, "pin": pin,
        }))

    def login(self, phone_number: str, pin: str) -> Dict[str, Any]:
        return self._adopt_session(self.post("/api/auth/login", {
            "phone_number": phone_number, "pin": pin,
        }))

    def request_otp(self, phone_number: str) -> Dict[str, Any]:
        return self.post("/api/auth/otp/request", {"phone_number": phone_number})

    def verify_otp(self, phone_number: str, otp: str) -> Dict[str, Any]:
        return self._adopt_session(self.post("/api/auth/otp/verify", {
            "phone_number": phone_number, "otp": otp,
        }))

    def logout(self) -> None:
        """Forget the token locally; the session itself expires on its own."""
        self.token = None
        self.current_user = None

    def me(self) -> Dict[str, Any]:
        return self.get("/api/auth/me")["user"]

    def change_pin(self, current_pin: str, new_pin: str) -> Dict[str, Any]:
        return self.post("/api/auth/change-pin", {"current_pin": current_pin, "new_pin": new_pin})

    def set_pin(self, pin: str) -> Dict[str, Any]:
        return self.post("/api/auth/set-pin", {"pin": pin})

    # --------------------------------------------------------------- catalog

    def list_categories(self) -> list:
        return self.get("/api/catalog/categories")["categories"]

    def list_products(self) -> Dict[str, list]:
        return self.get("/api/catalog/products")["products"]

    def list_payment_methods(self) -> list:
        return self.get("/api/catalog/payment-methods")["payment_methods"]

    def product_guides(self, product_id: int) -> list:
        return self.get(f"/api/catalog/products/{product_id}/guides")["guides"]

    # ---------------------------------------------------------------- orders

    def create_order(self, product_id: int, payment_method: str, payment_number: str) -> int:
        data = self.post("/api/orders", {
            "product_id": product_id,
            "payment_method": payment_method,
            "payment_number": payment_number,
        })
        return data["order_id"]

    def upload_receipt(self, order_id: int, image: bytes, ext: str) -> str:
        data = self.post(f"/api/orders/{order_id}/receipt", {
            "fileBase64": base64.b64encode(image).decode("ascii"),
            "fileExt": ext,
        })
        return data["path"]

    def my_orders(self) -> list:
        return self.get("/api/orders")["orders"]

    # --------------------------------------------------------- notifications

    def notifications(self, mark_seen: bool = False) -> Dict[str, Any]:
        params = {"mark_seen": "1"} if mark_seen else None
        return self.get("/api/notifications", params=params)

    def mark_notifications_seen(self) -> Dict[str, Any]:
        return self.post("/api/notifications/mark-seen")

    # ----------------------------------------------------------------- admin

    def admin_list_orders(self, status: Optional[str] = None) -> list:
        params = {"status": status} if status else None
        return self.get("/api/admin/orders", params=params)["orders"]

    def admin_approve_order(self, order_id: int, delivery_code: str) -> Dict[str, Any]:
        return self.post(f"/api/admin/orders/{order_id}/approve", {"delivery_code": delivery_code})

    def admin_reject_order(self, order_id: int, reason: str) -> Dict[str, Any]:
        return self.post(f"/api/admin/orders/{order_id}/reject", {"reason": reason})

    def admin_list_users(self) -> list:
        return self.get("/api/admin/users")["users"]

    def admin_manage(self, entity: str, action: str, item_key: str, item: Optional[Dict] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"action": action}
        if item is not None:
            body[item_key] = item
        return self.post(f"/api/admin/{entity}", body)

    def admin_settings(self, action: str, settings: Optional[Dict] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"action": action}
        if settings is not None:
            body["settings"] = settings
        return self.post("/api/admin/settings", body)


# Slices that belong to the signed-in user and must not survive a user switch
USER_SLICES = ("user", "orders", "notifications")


class StoreCache:
    """Client-side cache with an explicit refresh / invalidate contract."""

    def __init__(self, api: ApiClient):
        self.api = api
        self._data: Dict[str, Any] = {}
        self._loaders: Dict[str, Callable[[], Any]] = {
            "user": api.me,
            "categories": api.list_categories,
            "products": api.list_products,
            "payment_methods": api.list_payment_methods,
            "orders": api.my_orders,
            "notifications": lambda: api.notifications()["notifications"],
        }

    def _loader(self, name: str) -> Callable[[], Any]:
        try:
            return self._loaders[name]
        except KeyError:
            raise KeyError(f"Unknown cache slice: {name}") from None

    def refresh(self, name: str) -> Any:
        """Re-fetch one slice and replace it wholesale."""
        value = self._loader(name)()
        self._data[name] = value
        return value

    def invalidate(self, name: Optional[str] = None) -> None:
        """Drop one slice, or every slice when name is None."""
        if name is None:
            self._data.clear()
            return
        self._loader(name)
        self._data.pop(name, None)

    def get(self, name: str) -> Any:
        if name not in self._data:
            return self.refresh(name)
        return self._data[name]

    def is_cached(self, name: str) -> bool:
        return name in self._data

    # Mutations

    def login(self, phone_number: str, pin: str) -> Dict[str, Any]:
        data = self.api.login(phone_number, pin)
        for name in USER_SLICES:
            self.invalidate(name)
        self._data["user"] = data["user"]
        return data

    def logout(self) -> None:
        self.api.logout()
        for name in USER_SLICES:
            self.invalidate(name)

    def place_order(
        self,
        product_id: int,
        payment_method: str,
        payment_number: str,
        receipt: bytes,
        receipt_ext: str,
    ) -> int:
        """Create the order, attach its receipt, then refresh orders and notifications."""
        order_id = self.api.create_order(product_id, payment_method, payment_number)
        try:
            self.api.upload_receipt(order_id, receipt, receipt_ext)
        finally:
            self.refresh("orders")
        self.refresh("notifications")
        return order_id

    def mark_notifications_seen(self) -> list:
        data = self.api.mark_notifications_seen()
        self._data["notifications"] = data["notifications"]
        return data["notifications"]

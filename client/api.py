"""
HTTP client for the delivery API.

Every call goes through a small pipeline: request stages adjust the
outgoing ``ApiRequest`` (the bearer token is added here), response stages
see the raw response before it is decoded (a 401 signs the session out
here). Failures surface as ``ApiError`` subclasses carrying the server's
message, or a generic one when the server gave none.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import requests

from client.session import Session
from core.errors import ServiceError

logger = logging.getLogger(__name__)


class ApiError(ServiceError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ApiError):
    pass


class PermissionDeniedError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


_ERRORS_BY_STATUS = {
    401: AuthenticationError,
    403: PermissionDeniedError,
    404: NotFoundError,
}


@dataclass
class ApiRequest:
    method: str
    path: str
    params: Optional[dict] = None
    json: Optional[object] = None
    headers: dict = field(default_factory=dict)


RequestStage = Callable[[ApiRequest], ApiRequest]
ResponseStage = Callable[[ApiRequest, object], None]


def bearer_auth_stage(session: Session) -> RequestStage:
    def stage(request: ApiRequest) -> ApiRequest:
        if session.token:
            request.headers["Authorization"] = f"Bearer {session.token}"
        return request
    return stage


def unauthorized_logout_stage(session: Session) -> ResponseStage:
    def stage(request: ApiRequest, response) -> None:
        # a rejected login is just a bad password, not an expired session
        if response.status_code == 401 and request.path != "/auth/login":
            logger.warning("%s %s returned 401, signing out", request.method, request.path)
            session.logout()
    return stage


def _error_message(response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return fallback
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, str) and detail:
        return detail
    if isinstance(detail, list) and detail:
        # pydantic validation errors
        first = detail[0]
        return first.get("msg", fallback) if isinstance(first, dict) else str(first)
    return fallback


class ApiClient:
    def __init__(self, base_url: str, session: Session, http=None):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.http = http if http is not None else requests.Session()
        self.request_stages: List[RequestStage] = [bearer_auth_stage(session)]
        self.response_stages: List[ResponseStage] = [unauthorized_logout_stage(session)]

    def add_request_stage(self, stage: RequestStage) -> None:
        self.request_stages.append(stage)

    def add_response_stage(self, stage: ResponseStage) -> None:
        self.response_stages.append(stage)

    def request(self, method: str, path: str, params: dict = None, json=None, fallback: str = "Request failed"):
        req = ApiRequest(method=method.upper(), path=path, params=params, json=json)
        for stage in self.request_stages:
            req = stage(req)

        try:
            response = self.http.request(
                req.method,
                f"{self.base_url}{req.path}",
                params=req.params,
                json=req.json,
                headers=req.headers,
            )
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", req.method, req.path, e)
            raise ApiError(f"{fallback}: network error") from e

        for stage in self.response_stages:
            stage(req, response)

        if response.status_code >= 400:
            error_cls = _ERRORS_BY_STATUS.get(response.status_code, ApiError)
            message = _error_message(response, fallback)
            logger.info("%s %s -> %s %s", req.method, req.path, response.status_code, message)
            raise error_cls(message, status_code=response.status_code)

        if not response.content:
            return None
        return response.json()

    # -------------------------------
    # Auth
    # -------------------------------
    def login(self, email: str, password: str) -> dict:
        data = self.request("post", "/auth/login", json={"email": email, "password": password}, fallback="Login failed")
        self.session.login(data["access_token"], data["user"])
        return data["user"]

    def logout(self) -> None:
        try:
            if self.session.is_authenticated:
                self.request("post", "/auth/logout")
        finally:
            self.session.logout()

    def me(self) -> dict:
        return self.request("get", "/auth/me", fallback="Failed to load profile")

    def register(self, username: str, email: str, password: str, role: str) -> dict:
        data = self.request(
            "post",
            "/auth/register",
            json={"username": username, "email": email, "password": password, "role": role},
            fallback="Registration failed",
        )
        return data["user"]

    def refresh(self) -> None:
        data = self.request("post", "/auth/refresh", fallback="Session refresh failed")
        self.session.login(data["access_token"], data["user"])

    # -------------------------------
    # Jobs
    # -------------------------------
    def list_jobs(self, date: str = None, status: str = None) -> list:
        params = {k: v for k, v in (("date", date), ("status", status)) if v}
        return self.request("get", "/jobs", params=params or None, fallback="Failed to load jobs")

    def get_job(self, job_id: int) -> dict:
        return self.request("get", f"/jobs/{job_id}", fallback="Failed to load job details")

    def create_job(self, payload: dict) -> dict:
        return self.request("post", "/jobs", json=payload, fallback="Failed to create delivery")

    def update_job(self, job_id: int, changes: dict) -> dict:
        return self.request("put", f"/jobs/{job_id}", json=changes, fallback="Failed to update job")

    def delete_job(self, job_id: int) -> None:
        self.request("delete", f"/jobs/{job_id}", fallback="Failed to delete job")

    # -------------------------------
    # Customers
    # -------------------------------
    def list_customers(self) -> list:
        return self.request("get", "/customers", fallback="Failed to load customers")

    def search_customers(self, q: str) -> list:
        return self.request("get", "/customers/search", params={"q": q}, fallback="Failed to search customers")

    def create_customer(self, payload: dict) -> dict:
        return self.request("post", "/customers", json=payload, fallback="Failed to create customer")

    def update_customer(self, customer_id: int, changes: dict) -> dict:
        return self.request("put", f"/customers/{customer_id}", json=changes, fallback="Failed to update customer")

    # -------------------------------
    # Products
    # -------------------------------
    def list_products(self) -> list:
        return self.request("get", "/products", fallback="Failed to load products")

    def active_products(self) -> list:
        return self.request("get", "/products/active", fallback="Failed to load products")

    def customer_pricing(self, customer_id: int) -> list:
        return self.request("get", f"/products/pricing/{customer_id}", fallback="Failed to load product pricing")

    def create_product(self, payload: dict) -> dict:
        return self.request("post", "/products", json=payload, fallback="Failed to create product")

    def update_product(self, product_id: int, changes: dict) -> dict:
        return self.request("put", f"/products/{product_id}", json=changes, fallback="Failed to update product")

    def delete_product(self, product_id: int) -> None:
        self.request("delete", f"/products/{product_id}", fallback="Failed to delete product")

    # -------------------------------
    # Users
    # -------------------------------
    def list_users(self) -> list:
        return self.request("get", "/users", fallback="Failed to load users")

    def drivers(self) -> list:
        return self.request("get", "/users/drivers", fallback="Failed to load drivers")

    def update_user(self, user_id: int, changes: dict) -> dict:
        return self.request("put", f"/users/{user_id}", json=changes, fallback="Failed to update user")

    def change_password(self, user_id: int, new_password: str, current_password: str = None) -> None:
        body = {"new_password": new_password}
        if current_password is not None:
            body["current_password"] = current_password
        self.request("put", f"/users/{user_id}/password", json=body, fallback="Failed to change password")

    def delete_user(self, user_id: int) -> None:
        self.request("delete", f"/users/{user_id}", fallback="Failed to delete user")

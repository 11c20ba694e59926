from __future__ import annotations
from fastapi import Request
from .service import PracticeTestService

GUEST_CLIENT_ID = "guest"


def get_service(request: Request) -> PracticeTestService:
	return request.app.state.service


def client_id_from_request(request: Request) -> str:
	# First hop of X-Forwarded-For, then the socket peer, then a shared sentinel
	forwarded = request.headers.get("x-forwarded-for", "")
	first = forwarded.split(",")[0].strip()
	if first:
		return first
	if request.client and request.client.host:
		return request.client.host
	return GUEST_CLIENT_ID

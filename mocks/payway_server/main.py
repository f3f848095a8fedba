from fastapi import FastAPI, Header
from fastapi.responses import JSONResponse
from typing import Optional
import hashlib
import hmac
import os
import secrets

app = FastAPI(title="Mock PayWay Server", version="1.0.0")

API_KEY = os.getenv("MOCK_PAYWAY_API_KEY", "mock-key")
SECRET_KEY = os.getenv("MOCK_PAYWAY_SECRET_KEY", "mock-secret")
TOKEN_TTL = int(os.getenv("MOCK_PAYWAY_TOKEN_TTL", "3600"))

PAYMENT_METHODS = [
    {
        "id": "VISA",
        "name": "Visa",
        "type": "card",
        "cardType": "credit",
        "installmentPlans": [
            {"installments": 1, "interestRate": 0},
            {"installments": 3, "interestRate": 10},
            {"installments": 6, "interestRate": 18.5},
            {"installments": 12, "interestRate": 30, "fixedSurcharge": 150},
        ],
    },
    {
        "id": "MASTER",
        "name": "Mastercard",
        "type": "card",
        "cardType": "credit",
        "installmentPlans": [
            {"installments": 1, "interestRate": 0},
            {"installments": 6, "interestRate": 20},
        ],
    },
    {
        "id": "AMEX",
        "name": "American Express",
        "type": "card",
        "cardType": "credit",
        "installmentPlans": [{"installments": 3, "interestRate": 12}],
    },
    {"id": "MAESTRO", "name": "Maestro", "type": "card", "cardType": "debit", "installmentPlans": []},
]

issued_tokens: set[str] = set()


def error(status: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"code": code, "message": message})


@app.get("/health")
def health(): return {"status": "ok"}

@app.post("/auth/token")
def issue_token(
    x_api_key: Optional[str] = Header(None),
    x_signature: Optional[str] = Header(None),
    x_timestamp: Optional[str] = Header(None),
    x_nonce: Optional[str] = Header(None),
):
    if x_api_key != API_KEY:
        return error(401, "INVALID_API_KEY", "unknown api key")
    expected = hmac.new(
        SECRET_KEY.encode(), f"{x_api_key}{x_timestamp}{x_nonce}".encode(), hashlib.sha256
    ).hexdigest()
    if not x_signature or not hmac.compare_digest(expected, x_signature):
        return error(401, "INVALID_SIGNATURE", "signature mismatch")

    token = secrets.token_urlsafe(24)
    issued_tokens.add(token)
    return {"token": token, "expiresIn": TOKEN_TTL}

@app.get("/payment-methods")
def payment_methods(authorization: Optional[str] = Header(None)):
    token = (authorization or "").removeprefix("Bearer ")
    if token not in issued_tokens:
        return error(401, "INVALID_TOKEN", "token missing or expired")
    return {"paymentMethods": PAYMENT_METHODS}

"""Liveness endpoint."""


async def health() -> dict:
    """GET /health"""
    return {"status": "ok", "service": "nim-proxy"}

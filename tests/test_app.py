from httpx import ASGITransport, AsyncClient


async def test_unhandled_errors_keep_the_error_shape(app):
    @app.get("/api/v1/broken")
    async def broken():
        raise RuntimeError("boom")

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/api/v1/broken")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error_code": "INTERNAL_ERROR",
        "detail": "An unexpected error occurred",
    }
    assert "boom" not in response.text

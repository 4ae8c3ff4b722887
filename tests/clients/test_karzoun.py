from unittest.mock import AsyncMock, MagicMock, patch

from restaurant_queue.clients.karzoun import KarzounClient
from restaurant_queue.models.settings import KarzounConfig

CONFIG = KarzounConfig(enabled=True, appkey="app-key", authkey="auth-key")


def _make_response(data: object, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    if data is None:
        response.json.side_effect = ValueError("not json")
        response.text = "<html>maintenance</html>"
    else:
        response.json.return_value = data
    return response


def _patch_httpx(mock_client: AsyncMock):
    patcher = patch("restaurant_queue.clients.karzoun.httpx.AsyncClient")
    mock_cls = patcher.start()
    mock_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
    mock_cls.return_value.__aexit__ = AsyncMock(return_value=False)
    return patcher, mock_cls


class TestSend:
    async def test_success_posts_form(self):
        mock_client = AsyncMock()
        mock_client.post.return_value = _make_response({"message_status": "Success"})
        patcher, _ = _patch_httpx(mock_client)
        try:
            ok = await KarzounClient().send(CONFIG, "+966512345678", "مرحبا")
        finally:
            patcher.stop()

        assert ok is True
        assert mock_client.post.call_args.args[0] == KarzounClient.SEND_URL
        assert mock_client.post.call_args.kwargs["data"] == {
            "appkey": "app-key",
            "authkey": "auth-key",
            "to": "966512345678",
            "message": "مرحبا",
        }

    async def test_api_error_status(self, caplog):
        mock_client = AsyncMock()
        mock_client.post.return_value = _make_response(
            {"message_status": "Error", "body": "invalid number"}
        )
        patcher, _ = _patch_httpx(mock_client)
        try:
            assert await KarzounClient().send(CONFIG, "+966512345678", "hi") is False
        finally:
            patcher.stop()
        assert "invalid number" in caplog.text

    async def test_non_json_response(self, caplog):
        mock_client = AsyncMock()
        mock_client.post.return_value = _make_response(None)
        patcher, _ = _patch_httpx(mock_client)
        try:
            assert await KarzounClient().send(CONFIG, "+966512345678", "hi") is False
        finally:
            patcher.stop()
        assert "non-JSON" in caplog.text

    async def test_unauthorized(self):
        mock_client = AsyncMock()
        mock_client.post.return_value = _make_response({}, status_code=401)
        patcher, _ = _patch_httpx(mock_client)
        try:
            assert await KarzounClient().send(CONFIG, "+966512345678", "hi") is False
        finally:
            patcher.stop()

    async def test_missing_credentials(self):
        with patch("restaurant_queue.clients.karzoun.httpx.AsyncClient") as mock_cls:
            ok = await KarzounClient().send(KarzounConfig(enabled=True), "+966512345678", "hi")
        assert ok is False
        mock_cls.assert_not_called()

    async def test_non_object_json_returns_false(self, caplog):
        mock_client = AsyncMock()
        mock_client.post.return_value = _make_response("Success")
        patcher, _ = _patch_httpx(mock_client)
        try:
            assert await KarzounClient().send(CONFIG, "+966512345678", "hi") is False
        finally:
            patcher.stop()
        assert "got str" in caplog.text

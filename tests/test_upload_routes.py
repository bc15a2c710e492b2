import io

import pytest

from conftest import build_xlsx

TWO_SHEETS = {
    "Sheet1": [["Name", "Score"], ["ann", 3], ["bob", 5]],
    "Sheet2": [["City"], ["Oslo"]],
}


def _upload(client, headers, content, filename="scores.xlsx", field="excelFile"):
    return client.post(
        "/api/upload",
        data={field: (io.BytesIO(content), filename)},
        headers=headers,
        content_type="multipart/form-data",
    )


@pytest.fixture
def uploaded(client, auth_headers):
    resp = _upload(client, auth_headers(), build_xlsx(TWO_SHEETS))
    assert resp.status_code == 201
    return resp.get_json()["file"]


def test_index_and_health(client):
    assert client.get("/").data == b"API is running"
    assert client.get("/health").get_json() == {"status": "ok"}


@pytest.mark.parametrize(
    "method,path",
    [
        ("post", "/api/upload"),
        ("get", "/api/upload/history"),
        ("get", "/api/upload/abc"),
        ("put", "/api/upload/abc/sheet/Sheet1"),
        ("delete", "/api/upload/abc"),
    ],
)
def test_requires_token(client, method, path):
    resp = getattr(client, method)(path)
    assert resp.status_code == 401
    assert resp.get_json()["ok"] is False


def test_invalid_token_is_401(client):
    resp = client.get("/api/upload/history", headers={"Authorization": "Bearer not.a.jwt"})
    assert resp.status_code == 401


def test_upload_creates_record(uploaded):
    assert uploaded["originalFileName"] == "scores.xlsx"
    assert uploaded["sheetNames"] == ["Sheet1", "Sheet2"]
    assert uploaded["columnHeaders"]["Sheet1"] == ["Name", "Score"]
    assert uploaded["parsedData"]["Sheet1"][1] == {"Name": "bob", "Score": 5}
    assert uploaded["createdAt"]


def test_upload_accepts_file_field_alias(client, auth_headers):
    resp = _upload(client, auth_headers(), build_xlsx(TWO_SHEETS), field="file")
    assert resp.status_code == 201


def test_upload_without_file(client, auth_headers):
    resp = client.post("/api/upload", data={}, headers=auth_headers(), content_type="multipart/form-data")
    assert resp.status_code == 400


def test_upload_rejects_wrong_extension(client, auth_headers):
    resp = _upload(client, auth_headers(), b"a,b\n1,2\n", filename="scores.csv")
    assert resp.status_code == 400
    assert "Only Excel files" in resp.get_json()["message"]


def test_upload_rejects_renamed_non_workbook(client, auth_headers):
    resp = _upload(client, auth_headers(), b"<html>definitely not excel</html>", filename="fake.xlsx")
    assert resp.status_code == 400
    assert client.get("/api/upload/history", headers=auth_headers()).get_json() == []


def test_upload_too_large(client, auth_headers):
    resp = _upload(client, auth_headers(), b"\0" * (3 * 1024 * 1024))
    assert resp.status_code == 413


def test_history_lists_own_files_newest_first(client, auth_headers):
    h = auth_headers("user-1")
    first = _upload(client, h, build_xlsx(TWO_SHEETS), filename="first.xlsx").get_json()["file"]
    second = _upload(client, h, build_xlsx(TWO_SHEETS), filename="second.xlsx").get_json()["file"]
    _upload(client, auth_headers("user-2"), build_xlsx(TWO_SHEETS), filename="theirs.xlsx")

    rows = client.get("/api/upload/history", headers=h).get_json()

    assert [r["id"] for r in rows] == [second["id"], first["id"]]
    assert set(rows[0]) == {"id", "_id", "originalFileName", "sheetNames", "createdAt", "updatedAt"}
    assert rows[0]["_id"] == rows[0]["id"]


def test_drill_into_file_and_sheet(client, auth_headers, uploaded):
    h = auth_headers()
    detail = client.get(f"/api/upload/{uploaded['id']}", headers=h).get_json()
    assert detail["parsedData"] == uploaded["parsedData"]

    sheet = client.get(f"/api/upload/{uploaded['id']}/sheet/Sheet2", headers=h).get_json()
    assert sheet == {
        "fileId": uploaded["id"],
        "originalFileName": "scores.xlsx",
        "sheetName": "Sheet2",
        "columnHeaders": ["City"],
        "rows": [{"City": "Oslo"}],
        "rowCount": 1,
    }

    assert client.get(f"/api/upload/{uploaded['id']}/sheet/Nope", headers=h).status_code == 404


def test_delete_sheet_then_last_sheet_deletes_file(client, auth_headers, uploaded):
    h = auth_headers()
    file_id = uploaded["id"]

    resp = client.put(f"/api/upload/{file_id}/sheet/Sheet1", headers=h)
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["action"] == "sheet_deleted"
    assert body["_id"] == file_id
    assert body["sheetNames"] == ["Sheet2"]
    assert body["file"]["sheetNames"] == ["Sheet2"]

    history = client.get("/api/upload/history", headers=h).get_json()
    assert [f["sheetNames"] for f in history] == [["Sheet2"]]

    resp = client.put(f"/api/upload/{file_id}/sheet/Sheet2", headers=h)
    assert resp.status_code == 200
    assert resp.get_json()["action"] == "file_deleted"
    assert client.get("/api/upload/history", headers=h).get_json() == []
    assert client.get(f"/api/upload/{file_id}", headers=h).status_code == 404


def test_delete_sheet_with_space_in_name(client, auth_headers):
    h = auth_headers()
    content = build_xlsx({"Q1 Report": [["a"], [1]], "Q2 Report": [["a"], [2]]})
    file_id = _upload(client, h, content).get_json()["file"]["id"]

    resp = client.put(f"/api/upload/{file_id}/sheet/Q1%20Report", headers=h)

    assert resp.get_json()["sheetNames"] == ["Q2 Report"]


def test_delete_file(client, auth_headers, uploaded):
    h = auth_headers()
    resp = client.delete(f"/api/upload/{uploaded['id']}", headers=h)
    assert resp.status_code == 200
    assert resp.get_json()["action"] == "file_deleted"

    again = client.delete(f"/api/upload/{uploaded['id']}", headers=h)
    assert again.status_code == 404


def test_delete_nonexistent_file(client, auth_headers):
    resp = client.delete("/api/upload/nonexistent-id", headers=auth_headers())
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "File not found"


def test_other_user_cannot_touch_file(client, auth_headers, uploaded):
    intruder = auth_headers("user-2")
    file_id = uploaded["id"]

    assert client.get(f"/api/upload/{file_id}", headers=intruder).status_code == 403
    assert client.put(f"/api/upload/{file_id}/sheet/Sheet1", headers=intruder).status_code == 403
    assert client.delete(f"/api/upload/{file_id}", headers=intruder).status_code == 403

    own = client.get(f"/api/upload/{file_id}", headers=auth_headers()).get_json()
    assert own["sheetNames"] == ["Sheet1", "Sheet2"]

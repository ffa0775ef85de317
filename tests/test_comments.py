# tests/test_comments.py
def test_add_and_list_comments(client, make_user, make_listing):
    _, owner = make_user()
    commenter, headers = make_user()
    listing = make_listing(owner)

    resp = client.post(f"/listings/{listing['id']}/comments", headers=headers, json={"body": "First"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Comment added successfully"
    assert body["comment"]["user"]["id"] == commenter["id"]
    assert body["comment"]["listing_id"] == listing["id"]

    client.post(f"/listings/{listing['id']}/comments", headers=headers, json={"body": "Second"})
    resp = client.get(f"/listings/{listing['id']}/comments")
    assert [c["body"] for c in resp.json()] == ["Second", "First"]


def test_comment_validation(client, make_user, make_listing):
    _, headers = make_user()
    listing = make_listing(headers)
    resp = client.post(f"/listings/{listing['id']}/comments", headers=headers, json={"body": "x" * 1001})
    assert resp.status_code == 422
    assert "body" in resp.json()["errors"]

    resp = client.post(f"/listings/{listing['id']}/comments", json={"body": "anon"})
    assert resp.status_code == 401


def test_comment_on_missing_listing(client, make_user):
    _, headers = make_user()
    resp = client.post("/listings/404/comments", headers=headers, json={"body": "hello"})
    assert resp.status_code == 404
    assert client.get("/listings/404/comments").status_code == 404


def test_only_author_can_delete_comment(client, make_user, make_listing):
    _, owner = make_user()
    _, author = make_user()
    _, stranger = make_user()
    listing = make_listing(owner)
    comment = client.post(
        f"/listings/{listing['id']}/comments", headers=author, json={"body": "Nice desk"}
    ).json()["comment"]

    for headers in (owner, stranger):
        resp = client.delete(f"/comments/{comment['id']}", headers=headers)
        assert resp.status_code == 403
        assert resp.json() == {"message": "Unauthorized to delete this comment"}

    resp = client.delete(f"/comments/{comment['id']}", headers=author)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Comment deleted successfully"}
    assert client.get(f"/listings/{listing['id']}/comments").json() == []


def test_delete_missing_comment(client, make_user):
    _, headers = make_user()
    resp = client.delete("/comments/77", headers=headers)
    assert resp.status_code == 404
    assert resp.json() == {"message": "Comment not found"}


def test_blank_comment_is_rejected(client, make_user, make_listing):
    _, headers = make_user()
    listing = make_listing(headers)
    resp = client.post(f"/listings/{listing['id']}/comments", headers=headers, json={"body": "   "})
    assert resp.status_code == 422
    assert "body" in resp.json()["errors"]
    assert client.get(f"/listings/{listing['id']}/comments").json() == []

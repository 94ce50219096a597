from locallibrary import models


def test_create_genre_redirects_to_new_genre(client, store):
    response = client.post(
        "/catalog/genre/create", data={"name": "SciFi"}, follow_redirects=False
    )
    assert response.status_code == 302
    genre = store.find_one(models.Genre, models.Genre.name == "SciFi")
    assert response.headers["location"] == f"/catalog/genre/{genre.id}"


def test_create_duplicate_genre_redirects_to_existing(client, store):
    """
    Test submitting an existing genre name does not create a duplicate.

    Verifies:
    - Both submissions redirect to the same genre
    - Only one genre is stored
    """
    first = client.post(
        "/catalog/genre/create", data={"name": "SciFi"}, follow_redirects=False
    )
    second = client.post(
        "/catalog/genre/create", data={"name": " SciFi "}, follow_redirects=False
    )
    assert first.status_code == 302
    assert second.status_code == 302
    assert first.headers["location"] == second.headers["location"]
    assert store.count(models.Genre) == 1


def test_genre_name_match_is_case_sensitive(client, store):
    client.post("/catalog/genre/create", data={"name": "SciFi"})
    client.post("/catalog/genre/create", data={"name": "scifi"})
    assert store.count(models.Genre) == 2


def test_create_genre_name_too_short(client, store):
    response = client.post(
        "/catalog/genre/create", data={"name": " ab "}, follow_redirects=False
    )
    assert response.status_code == 200
    assert "Genre name must contain at least 3 characters" in response.text
    assert 'value="ab"' in response.text
    assert store.count(models.Genre) == 0


def test_list_genres_sorted_by_name(client, make_genre):
    for name in ("Poetry", "Fantasy", "Horror"):
        make_genre(name)

    text = client.get("/catalog/genres").text
    assert text.index("Fantasy") < text.index("Horror") < text.index("Poetry")


def test_genre_detail_lists_books(client, make_author, make_genre, make_book):
    fantasy = make_genre("Fantasy")
    poetry = make_genre("Poetry")
    author = make_author()
    make_book(author, title="The Hobbit", genres=[fantasy])
    make_book(author, title="Odes", genres=[poetry])

    response = client.get(f"/catalog/genre/{fantasy.id}")
    assert response.status_code == 200
    assert "The Hobbit" in response.text
    assert "Odes" not in response.text


def test_genre_detail_not_found(client):
    response = client.get("/catalog/genre/4242")
    assert response.status_code == 404
    assert "Genre not found" in response.text


def test_delete_genre_with_books_refused(client, store, make_author, make_genre, make_book):
    genre = make_genre("Fantasy")
    make_book(make_author(), title="The Hobbit", genres=[genre])

    response = client.post(f"/catalog/genre/{genre.id}/delete", follow_redirects=False)
    assert response.status_code == 200
    assert "The Hobbit" in response.text
    assert store.find_by_id(models.Genre, genre.id) is not None


def test_delete_genre_without_books(client, store, make_genre):
    genre = make_genre("Fantasy")

    response = client.post(f"/catalog/genre/{genre.id}/delete", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/catalog/genres"
    assert client.get(f"/catalog/genre/{genre.id}").status_code == 404


def test_delete_genre_get(client, make_genre):
    genre = make_genre("Fantasy")
    response = client.get(f"/catalog/genre/{genre.id}/delete")
    assert response.status_code == 200
    assert "Do you really want to delete this Genre?" in response.text

    missing = client.get("/catalog/genre/4242/delete", follow_redirects=False)
    assert missing.status_code == 302
    assert missing.headers["location"] == "/catalog/genres"


def test_update_genre_not_implemented(client, make_genre):
    genre = make_genre("Fantasy")
    assert (
        client.get(f"/catalog/genre/{genre.id}/update").text
        == "NOT IMPLEMENTED: Genre update GET"
    )
    assert (
        client.post(f"/catalog/genre/{genre.id}/update").text
        == "NOT IMPLEMENTED: Genre update POST"
    )

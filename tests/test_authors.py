from datetime import date

from locallibrary import models


def test_create_author_success(client, store):
    """
    Test successful author creation.

    Verifies:
    - 302 redirect to the new author's detail page
    - The stored record holds the normalized input
    """
    response = client.post(
        "/catalog/author/create",
        data={
            "first_name": "  Jane ",
            "family_name": "Austen",
            "date_of_birth": "1775-12-16",
            "date_of_death": "",
        },
        follow_redirects=False,
    )
    assert response.status_code == 302
    location = response.headers["location"]
    assert location.startswith("/catalog/author/")

    author_id = int(location.rsplit("/", 1)[1])
    author = store.find_by_id(models.Author, author_id)
    assert author.first_name == "Jane"
    assert author.family_name == "Austen"
    assert author.date_of_birth == date(1775, 12, 16)
    assert author.date_of_death is None


def test_create_author_empty_first_name(client, store):
    """
    Test the form is shown again when the first name is empty.

    Verifies:
    - 200 with the form re-rendered, nothing stored
    - Exactly one error, for first_name
    - The family name the user typed is echoed back
    """
    response = client.post(
        "/catalog/author/create",
        data={"first_name": "", "family_name": "Doe"},
        follow_redirects=False,
    )
    assert response.status_code == 200
    assert "First name must be specified." in response.text
    assert response.text.count('data-field="first_name"') == 1
    assert 'data-field="family_name"' not in response.text
    assert 'value="Doe"' in response.text
    assert store.count(models.Author) == 0


def test_create_author_non_alphanumeric(client, store):
    response = client.post(
        "/catalog/author/create",
        data={"first_name": "Jean-Luc", "family_name": "Picard"},
    )
    assert response.status_code == 200
    assert "First name has non-alphanumeric characters." in response.text
    assert store.count(models.Author) == 0


def test_create_author_escapes_echoed_input(client):
    response = client.post(
        "/catalog/author/create",
        data={"first_name": "Jane", "family_name": "<b>Doe</b>"},
    )
    assert response.status_code == 200
    assert "Family name has non-alphanumeric characters." in response.text
    assert "&lt;b&gt;Doe&lt;/b&gt;" in response.text
    assert "<b>Doe</b>" not in response.text


def test_create_author_invalid_date(client, store):
    response = client.post(
        "/catalog/author/create",
        data={"first_name": "Jane", "family_name": "Doe", "date_of_death": "yesterday"},
    )
    assert response.status_code == 200
    assert "Invalid date of death" in response.text
    assert store.count(models.Author) == 0


def test_create_author_form(client):
    response = client.get("/catalog/author/create")
    assert response.status_code == 200
    assert "Create Author" in response.text
    assert 'name="first_name"' in response.text


def test_list_authors_sorted_by_family_name(client, make_author):
    make_author("Isaac", "Asimov")
    make_author("Ursula", "LeGuin")
    make_author("Iain", "Banks")

    response = client.get("/catalog/authors")
    assert response.status_code == 200
    text = response.text
    assert text.index("Asimov, Isaac") < text.index("Banks, Iain") < text.index("LeGuin, Ursula")


def test_author_detail_lists_books(client, make_author, make_book):
    author = make_author("Patrick", "Rothfuss")
    make_book(author, title="The Name of the Wind")

    response = client.get(f"/catalog/author/{author.id}")
    assert response.status_code == 200
    assert "Rothfuss, Patrick" in response.text
    assert "The Name of the Wind" in response.text


def test_author_detail_not_found(client):
    response = client.get("/catalog/author/99999")
    assert response.status_code == 404
    assert "Author not found" in response.text


def test_delete_author_get_lists_books(client, make_author, make_book):
    author = make_author()
    make_book(author, title="Emma")

    response = client.get(f"/catalog/author/{author.id}/delete")
    assert response.status_code == 200
    assert "Emma" in response.text
    assert "Delete the following books" in response.text


def test_delete_author_get_missing_redirects(client):
    response = client.get("/catalog/author/99999/delete", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/catalog/authors"


def test_delete_author_with_books_refused(client, store, make_author, make_book):
    """
    Test an author with books cannot be deleted.

    Verifies:
    - The confirmation page is shown again listing the blocking books
    - The author is still stored
    """
    author = make_author()
    make_book(author, title="Persuasion")

    response = client.post(f"/catalog/author/{author.id}/delete", follow_redirects=False)
    assert response.status_code == 200
    assert "Persuasion" in response.text
    assert store.find_by_id(models.Author, author.id) is not None


def test_delete_author_without_books(client, store, make_author):
    author = make_author()

    response = client.post(f"/catalog/author/{author.id}/delete", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/catalog/authors"
    assert store.find_by_id(models.Author, author.id) is None

    assert client.get(f"/catalog/author/{author.id}").status_code == 404


def test_update_author_not_implemented(client, make_author):
    author = make_author()
    response = client.get(f"/catalog/author/{author.id}/update")
    assert response.status_code == 200
    assert response.text == "NOT IMPLEMENTED: Author update GET"

    response = client.post(f"/catalog/author/{author.id}/update")
    assert response.text == "NOT IMPLEMENTED: Author update POST"

import pytest

from conftest import make_friend


def test_add_friend_links_registered_account(client, auth_headers, other_user):
    response = client.post("/friends", headers=auth_headers, json={"name": "Other", "email": other_user.email})
    assert response.status_code == 200
    assert response.json()["linked_user_id"] == other_user.id

    offline = client.post("/friends", headers=auth_headers, json={"name": "Offline"}).json()
    assert offline["linked_user_id"] is None

def test_cannot_add_yourself(client, auth_headers, test_user):
    response = client.post("/friends", headers=auth_headers, json={"name": "Me", "email": test_user.email})
    assert response.status_code == 400

def test_duplicate_email_rejected(client, auth_headers):
    client.post("/friends", headers=auth_headers, json={"name": "Bob", "email": "bob@example.com"})
    response = client.post("/friends", headers=auth_headers, json={"name": "Bobby", "email": "bob@example.com"})
    assert response.status_code == 400

def test_list_only_own_friends(client, auth_headers, db_session, other_user):
    make_friend(db_session, other_user, "Not mine")
    client.post("/friends", headers=auth_headers, json={"name": "Mine"})

    friends = client.get("/friends", headers=auth_headers).json()
    assert [f["name"] for f in friends] == ["Mine"]


def test_personal_balances(client, auth_headers, other_headers, test_user, other_user):
    alice = client.post("/friends", headers=auth_headers, json={"name": "Alice"}).json()["id"]
    other = client.post("/friends", headers=auth_headers, json={"name": "Other", "email": other_user.email}).json()["id"]
    me_for_other = client.post("/friends", headers=other_headers, json={"name": "Test", "email": test_user.email}).json()["id"]

    # I paid 100 with Alice
    client.post("/expenses", headers=auth_headers, json={
        "title": "Dinner", "amount": 100, "date": "2024-03-05", "is_split": True, "friend_ids": [alice]
    })
    # Other paid 60 with me, recorded on their side
    client.post("/expenses", headers=other_headers, json={
        "title": "Cab", "amount": 60, "date": "2024-03-06", "is_split": True, "friend_ids": [me_for_other]
    })
    # Trip expenses never count towards personal balances
    trip_id = client.post("/trips", headers=auth_headers, json={"name": "Goa"}).json()["id"]
    client.post("/expenses", headers=auth_headers, json={
        "title": "Hotel", "amount": 500, "date": "2024-03-07", "trip_id": trip_id,
        "is_split": True, "friend_ids": [alice]
    })

    response = client.get("/friends/balances", headers=auth_headers)
    assert response.status_code == 200
    summary = response.json()
    by_id = {f["friend_id"]: f for f in summary["friends"]}

    assert by_id[alice]["net"] == pytest.approx(50)
    assert by_id[other]["paid"] == pytest.approx(60)
    assert by_id[other]["user_owes"] == pytest.approx(30)
    assert by_id[other]["net"] == pytest.approx(-30)
    assert summary["to_get"] == pytest.approx(50)
    assert summary["to_pay"] == pytest.approx(30)

def test_friend_expenses_include_their_side(client, auth_headers, other_headers, test_user, other_user):
    alice = client.post("/friends", headers=auth_headers, json={"name": "Alice"}).json()["id"]
    other = client.post("/friends", headers=auth_headers, json={"name": "Other", "email": other_user.email}).json()["id"]
    me_for_other = client.post("/friends", headers=other_headers, json={"name": "Test", "email": test_user.email}).json()["id"]

    client.post("/expenses", headers=auth_headers, json={
        "title": "Dinner", "amount": 100, "date": "2024-03-05", "is_split": True, "friend_ids": [alice]
    })
    cab = client.post("/expenses", headers=other_headers, json={
        "title": "Cab", "amount": 60, "date": "2024-03-06", "is_split": True, "friend_ids": [me_for_other]
    }).json()

    expenses = client.get(f"/friends/{other}/expenses", headers=auth_headers).json()
    assert [e["id"] for e in expenses] == [cab["id"]]
    assert expenses[0]["personal_share"] == 30

    alice_expenses = client.get(f"/friends/{alice}/expenses", headers=auth_headers).json()
    assert [e["title"] for e in alice_expenses] == ["Dinner"]

def test_friend_expenses_of_someone_elses_contact(client, auth_headers, db_session, other_user):
    theirs = make_friend(db_session, other_user, "Not mine")
    assert client.get(f"/friends/{theirs.id}/expenses", headers=auth_headers).status_code == 404

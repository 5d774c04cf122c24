from datetime import date

import pytest

from utils.analytics import shift_month


@pytest.fixture
def categories(client, auth_headers):
    food = client.post("/categories", headers=auth_headers, json={"name": "Food"}).json()["id"]
    groceries = client.post("/categories", headers=auth_headers, json={"name": "Groceries", "parent_id": food}).json()["id"]
    travel = client.post("/categories", headers=auth_headers, json={"name": "Travel"}).json()["id"]
    return {"food": food, "groceries": groceries, "travel": travel}


@pytest.fixture
def spending(client, auth_headers, categories):
    today = date.today().isoformat()
    last_month = f"{shift_month(date.today(), -1)}-15"
    friend_id = client.post("/friends", headers=auth_headers, json={"name": "Alice"}).json()["id"]

    for payload in [
        {"title": "Dinner", "amount": 100, "date": today, "category_id": categories["food"], "is_split": True, "friend_ids": [friend_id]},
        {"title": "Veggies", "amount": 40, "date": today, "category_id": categories["groceries"]},
        {"title": "Misc", "amount": 30, "date": today},
        {"title": "Settlement", "amount": 500, "date": today, "is_settlement": True},
        {"title": "Lunch", "amount": 80, "date": last_month, "category_id": categories["food"]},
    ]:
        assert client.post("/expenses", headers=auth_headers, json=payload).status_code == 200

    client.post("/budgets", headers=auth_headers, json={"amount": 1000})
    client.post("/budgets", headers=auth_headers, json={"amount": 200, "category_id": categories["food"]})


def test_categories_nest_one_level(client, auth_headers, categories):
    response = client.post("/categories", headers=auth_headers, json={"name": "Organic", "parent_id": categories["groceries"]})
    assert response.status_code == 400

    names = [c["name"] for c in client.get("/categories", headers=auth_headers).json()]
    assert names == ["Food", "Groceries", "Travel"]

def test_budget_needs_own_category(client, auth_headers, other_headers):
    theirs = client.post("/categories", headers=other_headers, json={"name": "Theirs"}).json()["id"]
    response = client.post("/budgets", headers=auth_headers, json={"amount": 100, "category_id": theirs})
    assert response.status_code == 400

def test_dashboard_uses_personal_share(client, auth_headers, categories, spending):
    response = client.get("/dashboard", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()

    assert data["total_this_month"] == pytest.approx(120)
    assert data["categories_used_count"] == 3
    assert data["total_monthly_budget"] == pytest.approx(1200)

    breakdown = {c["name"]: c["value"] for c in data["category_breakdown"]}
    assert breakdown == {"Food": pytest.approx(90), "Uncategorized": pytest.approx(30)}

    usage = {b["name"]: b["spent"] for b in data["budget_usage"]}
    assert usage == {"Overall": pytest.approx(120), "Food": pytest.approx(90)}

    assert len(data["trend"]) == 6
    assert data["trend"][-1]["amount"] == pytest.approx(120)
    assert data["trend"][-2]["amount"] == pytest.approx(80)

def test_dashboard_sub_category_breakdown(client, auth_headers, categories, spending):
    data = client.get("/dashboard", headers=auth_headers, params={"category_id": categories["food"]}).json()
    breakdown = {c["name"]: c["value"] for c in data["category_breakdown"]}
    assert breakdown == {"Food": pytest.approx(50), "Groceries": pytest.approx(40)}

def test_budget_usage_for_another_month(client, auth_headers, spending):
    month = shift_month(date.today(), -1)
    usage = client.get("/budgets/usage", headers=auth_headers, params={"month": month}).json()
    assert {b["name"]: b["spent"] for b in usage} == {"Overall": pytest.approx(80), "Food": pytest.approx(80)}

def test_dashboard_unknown_category(client, auth_headers):
    assert client.get("/dashboard", headers=auth_headers, params={"category_id": 999}).status_code == 404

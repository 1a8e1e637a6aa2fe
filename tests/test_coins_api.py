from conftest import customer_headers
from coworks.models import CoinTransaction, Customer
from coworks.services.coin_ledger import record_coins


def seed_coins(db, customer, *amounts):
    for amount in amounts:
        kind = "earned" if amount > 0 else "spent"
        record_coins(db, customer, amount, kind, f"Seeded {kind}")
    db.commit()


def test_balance_totals(client, db, make_customer):
    customer = make_customer()
    seed_coins(db, customer, 120, 40, -30)

    response = client.get("/coins/balance", headers=customer_headers(customer))

    assert response.json() == {"customer_id": customer.id, "balance": 130, "total_earned": 160, "total_spent": 30}


def test_transactions_are_newest_first(client, db, make_customer):
    customer, other = make_customer(), make_customer()
    seed_coins(db, customer, 50, -20)
    seed_coins(db, other, 75)

    response = client.get("/coins/transactions", headers=customer_headers(customer))

    assert [entry["amount"] for entry in response.json()] == [-20, 50]
    paged = client.get("/coins/transactions", params={"limit": 1, "offset": 1}, headers=customer_headers(customer))
    assert [entry["amount"] for entry in paged.json()] == [50]


def test_spend_coins(client, db, make_customer):
    customer = make_customer()
    seed_coins(db, customer, 100)

    response = client.post(
        "/coins/spend", json={"amount": 60, "description": "Coffee voucher"}, headers=customer_headers(customer)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["balance"] == 40
    assert body["transaction"]["amount"] == -60
    assert body["transaction"]["transaction_type"] == "spent"
    db.expire_all()
    assert db.get(Customer, customer.id).coin_balance == 40


def test_cannot_overspend(client, db, make_customer):
    customer = make_customer()
    seed_coins(db, customer, 10)

    response = client.post("/coins/spend", json={"amount": 11}, headers=customer_headers(customer))

    assert response.status_code == 400
    assert response.json()["detail"] == "Insufficient coins. Balance: 10, requested: 11"
    db.expire_all()
    assert db.query(CoinTransaction).count() == 1


def test_amount_must_be_positive(client, make_customer):
    customer = make_customer()
    response = client.post("/coins/spend", json={"amount": 0}, headers=customer_headers(customer))
    assert response.status_code == 422

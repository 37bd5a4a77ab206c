"""Multi-tenant web service with one SQLite database per tenant."""
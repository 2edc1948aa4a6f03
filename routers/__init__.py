from routers import admins, auth, books, clients, orders, partners

ROUTERS = [auth.router, clients.router, partners.router, orders.router, admins.router, books.router]

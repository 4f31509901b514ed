from . import (
    activations,
    auth,
    chat,
    logs,
    main,
    marketplace,
    orders,
    partners,
    pricing,
    product_requests,
    products,
)


def register_routes(app):
    app.register_blueprint(main.bp)
    app.register_blueprint(auth.bp)
    app.register_blueprint(pricing.bp)
    app.register_blueprint(partners.bp)
    app.register_blueprint(activations.bp)
    app.register_blueprint(product_requests.bp)
    app.register_blueprint(products.bp)
    app.register_blueprint(orders.bp)
    app.register_blueprint(chat.bp)
    app.register_blueprint(marketplace.bp)
    app.register_blueprint(logs.bp)

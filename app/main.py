from fastapi import FastAPI
from app.api.exceptions import register_error_handler
from app.api.v1.routes import payments, purchases, coupons, admin_payouts
from app.core.middleware.request_id import RequestIdMiddleware
from app.core.middleware.http_ctx import HttpContextMiddleware
from app.core.redis import create_redis


async def lifespan(app: FastAPI):
    r = await create_redis()
    app.state.redis = r
    try:
        yield
    finally:
        if r is not None:
            await r.aclose()


app = FastAPI(lifespan=lifespan)
register_error_handler(app)
app.add_middleware(HttpContextMiddleware)
app.add_middleware(RequestIdMiddleware, header_name="X-Request-ID")
app.include_router(payments.router)
app.include_router(purchases.router)
app.include_router(coupons.router)
app.include_router(admin_payouts.router)

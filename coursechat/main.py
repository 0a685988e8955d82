from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coursechat.chat.router import router as chat_router
from coursechat.config import CORS_ALLOW_ORIGINS
from coursechat.database import build_message_store, init_message_store
from coursechat.logging import setup_logging
from coursechat.payments.router import router as payment_router
from coursechat.system.health_router import router as system_router

log = setup_logging()

app = FastAPI(title="Course Chat Relay")


@app.on_event("startup")
async def startup_event():
    app.state.message_store = build_message_store()
    await init_message_store(app.state.message_store)
    log.info("Course chat relay started")


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== ROUTER REGISTRATION ====================
app.include_router(chat_router)
app.include_router(payment_router, prefix="/api")
app.include_router(system_router)
# ============================================================

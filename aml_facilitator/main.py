import logging
import os

import uvicorn
from fastapi import FastAPI

from aml_facilitator.routes.payments import router as payments_router

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

app = FastAPI(title="AML Payment Facilitator", version="0.1.0")

app.include_router(payments_router)


@app.get("/healthz")
def health():
    return {"ok": True}


def run():
    """Serve the facilitator (HOST / PORT env, default 0.0.0.0:8000)."""
    uvicorn.run(
        "aml_facilitator.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    run()

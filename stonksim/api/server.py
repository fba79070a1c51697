"""
FastAPI control surface for a running trading session.

Endpoints are async so every ledger call runs on the session's event
loop, serialized with the tick phases.
"""
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import Optional
from decimal import Decimal
import logging

from ..core.types import OrderAction, TradeSide
from ..core.bonds import find_bond
from ..session import TradingSession

logger = logging.getLogger(__name__)

# Pydantic models
class TradeRequest(BaseModel):
    symbol: str
    action: OrderAction
    quantity: int

class BondTradeRequest(BaseModel):
    bond_id: str
    side: TradeSide
    quantity: int

class OrderRequest(BaseModel):
    symbol: str
    action: OrderAction
    quantity: int
    trigger_price: Decimal

class PauseRequest(BaseModel):
    reason: str = 'api'


def create_app(session: TradingSession) -> FastAPI:
    """Build the API bound to one session"""
    app = FastAPI(title="Stonksim Trading Terminal API")

    # Enable CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _require_symbol(symbol: str):
        if session.market.get(symbol) is None:
            raise HTTPException(status_code=404, detail=f"Unknown symbol: {symbol}")

    def _last_log() -> str:
        recent = session.system_log.recent(1)
        return recent[0].msg if recent else ''

    @app.get("/health")
    async def health():
        """Health check"""
        return {"status": "ok", "time": session.now, "paused": session.is_paused}

    @app.get("/state")
    async def get_state():
        return session.get_state()

    @app.post("/trade")
    async def trade(request: TradeRequest):
        _require_symbol(request.symbol)
        if not session.trade(request.action, request.symbol, request.quantity):
            raise HTTPException(status_code=400, detail=_last_log())
        return {"success": True, "message": _last_log(), "cash": float(session.ledger.cash)}

    @app.post("/bonds/trade")
    async def trade_bond(request: BondTradeRequest):
        if find_bond(request.bond_id) is None:
            raise HTTPException(status_code=404, detail=f"Unknown bond: {request.bond_id}")

        if request.side == TradeSide.BUY:
            success = session.buy_bond(request.bond_id, request.quantity)
        else:
            success = session.sell_bond(request.bond_id, request.quantity)

        if not success:
            raise HTTPException(status_code=400, detail=_last_log())
        return {"success": True, "message": _last_log(), "cash": float(session.ledger.cash)}

    @app.post("/orders")
    async def place_order(request: OrderRequest):
        _require_symbol(request.symbol)
        order_id = session.place_order(
            request.symbol, request.action, request.quantity, request.trigger_price
        )
        if order_id is None:
            raise HTTPException(status_code=400, detail=_last_log())
        return {"id": order_id, "status": "PENDING"}

    @app.delete("/orders/{order_id}")
    async def cancel_order(order_id: str):
        order = session.orders.get(order_id)
        if order is None:
            raise HTTPException(status_code=404, detail=f"Unknown order: {order_id}")
        if not session.cancel_order(order_id):
            raise HTTPException(
                status_code=400,
                detail=f"Order {order_id} is {order.status.value}, not PENDING"
            )
        return {"id": order_id, "status": "CANCELLED"}

    @app.post("/pause")
    async def pause(request: Optional[PauseRequest] = None):
        session.pause((request or PauseRequest()).reason)
        return {"paused": session.is_paused}

    @app.post("/resume")
    async def resume(request: Optional[PauseRequest] = None):
        session.resume((request or PauseRequest()).reason)
        return {"paused": session.is_paused}

    @app.post("/reset")
    async def reset():
        logger.info("Reset requested over API")
        session.reset()
        return {"status": "reset", "cash": float(session.ledger.cash)}

    @app.post("/display/text-glow")
    async def toggle_text_glow():
        return {"is_text_glow_enabled": session.toggle_text_glow()}

    return app

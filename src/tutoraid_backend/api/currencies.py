'''
API endpoint listing the supported currencies and their display symbols.
'''
from fastapi import APIRouter
from pydantic import BaseModel

from ..models.enums import CurrencyCode
from ..core.currency import get_currency_symbol

class CurrencyRead(BaseModel):
    code: CurrencyCode
    symbol: str

router = APIRouter(prefix="/currencies", tags=["Currencies"])

@router.get("/", response_model=list[CurrencyRead])
async def list_currencies():
    return [CurrencyRead(code=code, symbol=get_currency_symbol(code)) for code in CurrencyCode]

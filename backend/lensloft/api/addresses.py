"""
Addresses API Endpoints
Address book of the signed-in user
"""
from fastapi import APIRouter, Depends

from lensloft.api.deps import get_address_book
from lensloft.core.auth import TokenUser, get_current_user
from lensloft.domain.address import AddressInput, AddressUpdate
from lensloft.services.address_service import AddressBook

router = APIRouter()


@router.get("")
async def list_addresses(
    user: TokenUser = Depends(get_current_user),
    book: AddressBook = Depends(get_address_book),
):
    addresses = await book.list_addresses(user.id)
    return {
        "status": "success",
        "count": len(addresses),
        "data": [a.model_dump(mode="json") for a in addresses],
    }


@router.post("")
async def add_address(
    payload: AddressInput,
    user: TokenUser = Depends(get_current_user),
    book: AddressBook = Depends(get_address_book),
):
    address = await book.add_address(user.id, payload)
    return {"status": "success", "data": address.model_dump(mode="json")}


@router.patch("/{address_id}")
async def update_address(
    address_id: str,
    payload: AddressUpdate,
    user: TokenUser = Depends(get_current_user),
    book: AddressBook = Depends(get_address_book),
):
    address = await book.update_address(user.id, address_id, payload)
    return {"status": "success", "data": address.model_dump(mode="json")}


@router.post("/{address_id}/default")
async def set_default_address(
    address_id: str,
    user: TokenUser = Depends(get_current_user),
    book: AddressBook = Depends(get_address_book),
):
    address = await book.set_default(user.id, address_id)
    return {"status": "success", "data": address.model_dump(mode="json")}


@router.delete("/{address_id}")
async def delete_address(
    address_id: str,
    user: TokenUser = Depends(get_current_user),
    book: AddressBook = Depends(get_address_book),
):
    await book.delete_address(user.id, address_id)
    return {"status": "success"}

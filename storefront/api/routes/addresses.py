"""Address Routes — list and add the caller's shipping addresses."""

from fastapi import APIRouter, Depends, status

from storefront.api.dependencies import get_address_book, get_current_user
from storefront.models.user import User
from storefront.schemas.address import AddressCreate, AddressResponse
from storefront.services.directories import SqlAddressBook

router = APIRouter(prefix="/api/v1/addresses", tags=["addresses"])


@router.get("", response_model=list[AddressResponse])
async def list_addresses(
    user: User = Depends(get_current_user),
    book: SqlAddressBook = Depends(get_address_book),
):
    return [AddressResponse.model_validate(a) for a in await book.list_for_user(user.id)]


@router.post(
    "", response_model=AddressResponse, status_code=status.HTTP_201_CREATED,
)
async def add_address(
    body: AddressCreate,
    user: User = Depends(get_current_user),
    book: SqlAddressBook = Depends(get_address_book),
):
    address = await book.add(user.id, body.model_dump())
    return AddressResponse.model_validate(address)

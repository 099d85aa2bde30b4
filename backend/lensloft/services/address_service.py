"""
Address Book Service
Shipping addresses of a user, keeping zero or one default at all times
"""
import logging
from typing import List, Optional

from lensloft.core.errors import NotFound
from lensloft.domain.address import Address, AddressInput, AddressUpdate
from lensloft.repositories.address_repository import AddressRepository

logger = logging.getLogger(__name__)


class AddressBook:
    """
    Service for user addresses

    Default handling:
    - the first address of a user becomes the default
    - the old default is cleared before a new one is set
    - deleting the default promotes the first remaining address
    """

    def __init__(self, repository: Optional[AddressRepository] = None):
        self.repository = repository or AddressRepository()

    async def list_addresses(self, user_id: str) -> List[Address]:
        """Default first, then newest first"""
        return await self.repository.find_by_user(user_id)

    async def get_address(self, user_id: str, address_id: str) -> Address:
        address = await self.repository.find_by_id(address_id, user_id)
        if address is None:
            raise NotFound(f"address {address_id} not found")
        return address

    async def get_default_address(self, user_id: str) -> Optional[Address]:
        return await self.repository.find_default(user_id)

    async def add_address(self, user_id: str, form: AddressInput) -> Address:
        data = form.model_dump()
        existing = await self.repository.count(user_id)

        if existing == 0:
            data["is_default"] = True
        elif data["is_default"]:
            await self.repository.clear_default(user_id)

        address = await self.repository.insert(user_id, data)
        logger.info(f"Address {address.id} added for user {user_id} (default={address.is_default})")
        return address

    async def update_address(self, user_id: str, address_id: str, changes: AddressUpdate) -> Address:
        data = changes.model_dump(exclude_none=True)
        if not data:
            return await self.get_address(user_id, address_id)
        if data.get("is_default"):
            await self.get_address(user_id, address_id)
            await self.repository.clear_default(user_id)
        return await self.repository.update(address_id, user_id, data)

    async def set_default(self, user_id: str, address_id: str) -> Address:
        await self.get_address(user_id, address_id)
        await self.repository.clear_default(user_id)
        return await self.repository.update(address_id, user_id, {"is_default": True})

    async def delete_address(self, user_id: str, address_id: str) -> None:
        address = await self.get_address(user_id, address_id)
        await self.repository.delete(address_id, user_id)

        if address.is_default:
            remaining = await self.repository.find_by_user(user_id)
            if remaining:
                await self.repository.update(remaining[0].id, user_id, {"is_default": True})
                logger.info(f"Address {remaining[0].id} promoted to default for user {user_id}")

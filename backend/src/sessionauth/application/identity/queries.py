"""Identity use-case queries."""
from uuid import UUID

from sessionauth.domain.identity.entities import Account
from sessionauth.domain.identity.repositories import IAccountRepository


async def get_account_by_id(account_id: UUID, account_repo: IAccountRepository) -> Account | None:
    return await account_repo.get_by_id(account_id)

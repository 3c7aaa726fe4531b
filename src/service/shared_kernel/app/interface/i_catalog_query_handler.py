from typing import Protocol


class ICatalogQueryHandler(Protocol):
    """
    Catalog collaborator port

    The catalog owns products; we only ask whether a product id still exists before
    granting a lease or opening a product-scoped conversation.
    """

    async def product_exists(self, *, product_id: str) -> bool:
        """
        Returns:
            False when the catalog answers 404

        Raises:
            TransientError: catalog unreachable after retries
        """
        ...

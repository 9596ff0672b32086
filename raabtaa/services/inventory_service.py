# Inventory ledger: per-product stock counts
import logging

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from raabtaa.errors import ValidationError, NotFoundError, PermissionDenied, PersistenceError
from raabtaa.models import Product

logger = logging.getLogger(__name__)


class InventoryService:

    def __init__(self, session):
        self.session = session

    def get_product(self, product_id):
        product = self.session.get(Product, product_id)
        if not product:
            raise NotFoundError(f'Product with ID {product_id} not found')
        return product

    def get_stock(self, product_id):
        return self.get_product(product_id).stock_quantity

    def decrement(self, product_id, quantity):
        """Take quantity out of stock unless that would drive it negative.

        Runs as a single conditional UPDATE, so two concurrent orders cannot
        both pass the check. Returns False when nothing was decremented.
        Does not commit.
        """
        result = self.session.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock_quantity >= quantity)
            .values(stock_quantity=Product.stock_quantity - quantity)
        )
        if result.rowcount != 1:
            logger.warning(f"Stock for product {product_id} is below {quantity}, not decremented")
            return False
        return True

    def set_stock(self, product_id, owner_id, stock_quantity):
        """Seller restock: overwrite the count for one of the owner's products."""
        if isinstance(stock_quantity, bool) or not isinstance(stock_quantity, int) or stock_quantity < 0:
            raise ValidationError('Stock must be a non-negative integer')
        product = self.get_product(product_id)
        if product.owner_id != owner_id:
            raise PermissionDenied('No permission to update this product')
        try:
            product.stock_quantity = stock_quantity
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to set stock for product {product_id}: {str(e)}")
            raise PersistenceError('Failed to update stock') from e
        logger.info(f"Stock for product {product_id} set to {stock_quantity}")
        return product

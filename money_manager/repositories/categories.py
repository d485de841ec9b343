"""Category rows and the default category set."""

from typing import Any, Optional

from money_manager.models.ledger import Category, CategoryType
from money_manager.repositories.base import Repository, from_bool_int, to_bool_int


def default_categories(transfer_category_id: str) -> list[Category]:
    """Categories every new database starts with."""
    return [
        Category(id=transfer_category_id, name="Transfer", type=CategoryType.BOTH,
                 icon="repeat", color="#64748B", is_system=True),
        Category(id="cat_salary", name="Salary", type=CategoryType.INCOME,
                 icon="briefcase", color="#22C55E", is_system=True),
        Category(id="cat_interest", name="Interest", type=CategoryType.INCOME,
                 icon="percent", color="#10B981", is_system=True),
        Category(id="cat_food", name="Food & Dining", type=CategoryType.EXPENSE,
                 icon="utensils", color="#F97316", is_system=True),
        Category(id="cat_groceries", name="Groceries", type=CategoryType.EXPENSE,
                 icon="shopping-cart", color="#EAB308", is_system=True),
        Category(id="cat_rent", name="Rent", type=CategoryType.EXPENSE,
                 icon="home", color="#8B5CF6", is_system=True),
        Category(id="cat_utilities", name="Utilities", type=CategoryType.EXPENSE,
                 icon="zap", color="#0EA5E9", is_system=True),
        Category(id="cat_transport", name="Transport", type=CategoryType.EXPENSE,
                 icon="car", color="#3B82F6", is_system=True),
        Category(id="cat_subscriptions", name="Subscriptions", type=CategoryType.EXPENSE,
                 icon="tv", color="#EC4899", is_system=True),
        Category(id="cat_savings", name="Savings", type=CategoryType.BOTH,
                 icon="piggy-bank", color="#14B8A6", is_system=True),
        Category(id="cat_other", name="Other", type=CategoryType.BOTH,
                 icon="more-horizontal", color="#94A3B8", is_system=True),
    ]


class CategoryRepository(Repository):

    @staticmethod
    def _row_to_category(row: dict[str, Any]) -> Category:
        return Category(
            id=row["id"],
            name=row["name"],
            type=CategoryType(row["type"]),
            icon=row["icon"],
            color=row["color"],
            is_system=from_bool_int(row["is_system"]),
        )

    async def get(self, category_id: str) -> Optional[Category]:
        rows = await self._backend.query("SELECT * FROM categories WHERE id = ?", (category_id,))
        return self._row_to_category(rows[0]) if rows else None

    async def list_all(self) -> list[Category]:
        rows = await self._backend.query("SELECT * FROM categories ORDER BY name")
        return [self._row_to_category(row) for row in rows]

    async def create(self, category: Category) -> bool:
        """Insert unless the id exists. Returns True if a row was added."""
        result = await self._backend.execute(
            """
            INSERT OR IGNORE INTO categories (id, name, type, icon, color, is_system)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                category.id,
                category.name,
                category.type.value,
                category.icon,
                category.color,
                to_bool_int(category.is_system),
            ),
        )
        return result.changes > 0

    async def seed(self, categories: list[Category]) -> int:
        """Insert the given categories, leaving existing ones untouched."""
        added = 0
        for category in categories:
            if await self.create(category):
                added += 1
        return added

"""Generate fake game library data for testing and development.

Creates users, tagged games, ratings and ownership records and writes them as
the CSV files read by ``cortexrec.store.load_store_from_csv``. Users get a
hidden taste (two favourite tags) and rate games that share those tags
higher, so the trained model has real signal to pick up.

Example:
    Run the script directly to generate default data:
        $ python scripts/generate_fake_data.py --output-dir data

    Or import and use programmatically:
        from scripts.generate_fake_data import generate_fake_store
        store = generate_fake_store(num_users=100, num_items=200)
"""

import argparse
import random
import sys
from datetime import date, datetime, timedelta
from pathlib import Path

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from cortexrec.recommender.models import Item, Rating, User, UserRole
from cortexrec.store import InMemoryInteractionStore, save_store_to_csv

# Default configuration constants
DEFAULT_NUM_USERS = 50
DEFAULT_NUM_ITEMS = 100
DEFAULT_NUM_RATINGS = 1000
DEFAULT_DAYS_BACK = 90
DEFAULT_SEED = 42

TAG_POOL = [
    "RPG", "Fantasy", "Open World", "Action", "Adventure", "Shooter",
    "Multiplayer", "Strategy", "Simulation", "Sports", "Racing", "Puzzle",
    "Indie", "Horror", "Sci-Fi", "Platformer", "Roguelike", "Survival",
]
STUDIOS = ["Nordlight", "Blue Harbor", "Iron Fox", "Quiet Owl", "Redline Games"]


def generate_fake_store(
    num_users: int = DEFAULT_NUM_USERS,
    num_items: int = DEFAULT_NUM_ITEMS,
    num_ratings: int = DEFAULT_NUM_RATINGS,
    seed: int = DEFAULT_SEED,
) -> InMemoryInteractionStore:
    """Generate a synthetic interaction store.

    Args:
        num_users: Number of users. Must be positive.
        num_items: Number of games. Must be positive.
        num_ratings: Number of rating events to draw. Repeated (user, game)
            pairs collapse to one rating.
        seed: Random seed for reproducibility.

    Returns:
        Populated InMemoryInteractionStore.

    Raises:
        ValueError: If any count is non-positive.
    """
    if num_users <= 0 or num_items <= 0 or num_ratings <= 0:
        raise ValueError("num_users, num_items, and num_ratings must be positive")

    rng = random.Random(seed)
    today = date.today()

    items = []
    for item_id in range(1, num_items + 1):
        items.append(
            Item(
                id=item_id,
                title=f"Game {item_id}",
                tags=rng.sample(TAG_POOL, rng.randint(1, 4)),
                rating=round(rng.uniform(2.5, 5.0), 1),
                rating_count=rng.randint(0, 5000),
                release_date=today - timedelta(days=rng.randint(0, 3650)),
                developer=rng.choice(STUDIOS),
                publisher=rng.choice(STUDIOS),
            )
        )

    users = []
    tastes = {}
    for user_id in range(1, num_users + 1):
        tastes[user_id] = set(rng.sample(TAG_POOL, 2))
        users.append(
            User(
                id=user_id,
                username=f"player{user_id}",
                role=UserRole.ADMIN if user_id == 1 else UserRole.USER,
                preferred_tags=set(rng.sample(sorted(tastes[user_id]), 1)),
            )
        )

    store = InMemoryInteractionStore(users=users, items=items)

    start = datetime.now() - timedelta(days=DEFAULT_DAYS_BACK)
    for _ in range(num_ratings):
        user = rng.choice(users)
        item = rng.choice(items)
        overlap = len(tastes[user.id] & set(item.tags))
        score = min(5, max(1, 2 + 2 * overlap + rng.choice([-1, 0, 0, 1])))
        store.upsert_rating(
            Rating(
                user_id=user.id,
                item_id=item.id,
                rating=score,
                created_at=start + timedelta(seconds=rng.randrange(DEFAULT_DAYS_BACK * 86400)),
            )
        )
        if rng.random() < 0.5:
            user.owned_item_ids.add(item.id)

    return store


def main() -> None:
    """Main entry point for the data generation script."""
    parser = argparse.ArgumentParser(description="Generate fake game library data.")
    parser.add_argument("--output-dir", type=str, default="data")
    parser.add_argument("--num-users", type=int, default=DEFAULT_NUM_USERS)
    parser.add_argument("--num-items", type=int, default=DEFAULT_NUM_ITEMS)
    parser.add_argument("--num-ratings", type=int, default=DEFAULT_NUM_RATINGS)
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED)
    args = parser.parse_args()

    print(f"Generating {args.num_ratings} fake ratings...")
    print(f"Users: {args.num_users}, Games: {args.num_items}")

    try:
        store = generate_fake_store(
            num_users=args.num_users,
            num_items=args.num_items,
            num_ratings=args.num_ratings,
            seed=args.seed,
        )
    except ValueError as e:
        print(f"Error generating data: {e}")
        sys.exit(1)

    save_store_to_csv(store, args.output_dir)

    print(f"\nData generated successfully!")
    print(f"Saved to: {Path(args.output_dir).absolute()}")
    print(f"\nData summary:")
    print(f"  Users:   {len(store.list_users())}")
    print(f"  Games:   {len(store.list_items())}")
    print(f"  Ratings: {len(store.list_ratings())}")


if __name__ == '__main__':
    main()

"""CLI script for getting game recommendations.

Useful for testing and evaluation. Trains on a CSV data directory, gets
recommendations for a user (or games similar to a game) and prints them.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from cortexrec.recommender.config import EngineConfig
from cortexrec.recommender.service import RecommendationService
from cortexrec.store import load_store_from_csv

# Setup logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s"
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Get game recommendations for a user",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/predict_cli.py data 42
  python scripts/predict_cli.py data 42 --top-n 5 --explain
  python scripts/predict_cli.py data 42 --similar-to 7
        """
    )

    parser.add_argument("data_dir", type=str, help="CSV data directory")
    parser.add_argument("user_id", type=int, help="User ID to get recommendations for")
    parser.add_argument(
        "--top-n",
        type=int,
        default=10,
        help="Number of recommendations to return (default: 10)"
    )
    parser.add_argument(
        "--similar-to",
        type=int,
        default=None,
        help="Show games similar to this game ID instead"
    )
    parser.add_argument(
        "--explain",
        action="store_true",
        help="Show score breakdown for recommendations"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    try:
        store = load_store_from_csv(args.data_dir)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: could not load data from {args.data_dir}", file=sys.stderr)
        print(f"  {e}", file=sys.stderr)
        sys.exit(1)

    service = RecommendationService(EngineConfig.from_env())
    service.train_from_store(store)
    items = store.list_items()

    if args.similar_to is not None:
        target = store.get_item(args.similar_to)
        if target is None:
            print(f"Error: game {args.similar_to} not found", file=sys.stderr)
            sys.exit(1)
        similar = service.get_similar_items(target, items, args.top_n)
        print(f"\nGames similar to {target.title} ({target.id}):")
        for item in similar:
            print(f"  {item.id:>5}  {item.title:<30} {', '.join(item.tags)}")
        print()
        return

    user = store.get_user(args.user_id)
    if user is None:
        print(f"Error: user {args.user_id} not found", file=sys.stderr)
        sys.exit(1)

    method, recommendations, scores = service.explain_recommendations(user, items, args.top_n)

    print(f"\nRecommendations for user {args.user_id} (method: {method}):")
    for item in recommendations:
        line = f"  {item.id:>5}  {item.title:<30} {', '.join(item.tags)}"
        if args.explain and item.id in scores:
            breakdown = ", ".join(f"{k}={v:.3f}" for k, v in scores[item.id].items())
            line += f"  [{breakdown}]"
        print(line)

    print()


if __name__ == "__main__":
    main()

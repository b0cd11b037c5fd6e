"""Command-line interface for training the hybrid recommendation model.

Loads users, games and ratings from a CSV data directory, runs a full
training pass and prints the model statistics.

Example:
    Train a model with default settings:
        $ python scripts/train_model.py data

    Train with custom parameters:
        $ python scripts/train_model.py data \\
            --latent-factors 16 \\
            --max-iterations 200 \\
            --min-ratings 20
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from cortexrec.recommender.config import (
    DEFAULT_LATENT_FACTORS,
    DEFAULT_LEARNING_RATE,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_MIN_RATINGS,
    DEFAULT_RANDOM_STATE,
    DEFAULT_TAG_EMBEDDING_SIZE,
    EngineConfig,
)
from cortexrec.recommender.service import RecommendationService
from cortexrec.store import load_store_from_csv


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the script.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise, use INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_arguments() -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Namespace object containing parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description="Train the hybrid recommendation model from CSV data.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Train with default settings
  python scripts/train_model.py data

  # Train with more latent factors
  python scripts/train_model.py data --latent-factors 16

  # Train with verbose logging
  python scripts/train_model.py data --verbose
        """,
    )

    parser.add_argument(
        "data_dir",
        type=str,
        help="Directory containing users.csv, items.csv, ratings.csv "
        "and optionally ownership.csv",
    )
    parser.add_argument(
        "--latent-factors",
        type=int,
        default=DEFAULT_LATENT_FACTORS,
        help=f"Width of the CF latent factor vectors (default: {DEFAULT_LATENT_FACTORS})",
    )
    parser.add_argument(
        "--tag-embedding-size",
        type=int,
        default=DEFAULT_TAG_EMBEDDING_SIZE,
        help=f"Width of the tag embeddings (default: {DEFAULT_TAG_EMBEDDING_SIZE})",
    )
    parser.add_argument(
        "--learning-rate",
        type=float,
        default=DEFAULT_LEARNING_RATE,
        help=f"SGD learning rate (default: {DEFAULT_LEARNING_RATE})",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=DEFAULT_MAX_ITERATIONS,
        help=f"Maximum SGD epochs (default: {DEFAULT_MAX_ITERATIONS})",
    )
    parser.add_argument(
        "--min-ratings",
        type=int,
        default=DEFAULT_MIN_RATINGS,
        help=f"Ratings needed before training runs (default: {DEFAULT_MIN_RATINGS})",
    )
    parser.add_argument(
        "--random-state",
        type=int,
        default=DEFAULT_RANDOM_STATE,
        help=f"Random seed for reproducibility (default: {DEFAULT_RANDOM_STATE})",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args()


def main() -> int:
    """Main entry point for the training script.

    Returns:
        Exit code: 0 on success, 1 on error.
    """
    try:
        args = parse_arguments()
        setup_logging(verbose=args.verbose)
        logger = logging.getLogger(__name__)

        config = EngineConfig(
            latent_factors=args.latent_factors,
            tag_embedding_size=args.tag_embedding_size,
            learning_rate=args.learning_rate,
            max_iterations=args.max_iterations,
            min_ratings=args.min_ratings,
            random_state=args.random_state,
        )

        logger.info("=" * 70)
        logger.info("Training Configuration")
        logger.info("=" * 70)
        logger.info(f"Data directory:  {args.data_dir}")
        for name, value in config.model_dump().items():
            logger.info(f"{name + ':':<22}{value}")
        logger.info("=" * 70)

        store = load_store_from_csv(args.data_dir)
        service = RecommendationService(config)
        trained = service.train_from_store(store)

        logger.info("=" * 70)
        logger.info("Training Summary")
        logger.info("=" * 70)
        print(json.dumps(service.get_model_stats(), indent=2))

        if not trained:
            logger.warning("Model not trained; recommendations will use popularity ranking")
        else:
            logger.info("Training completed successfully!")
        return 0

    except FileNotFoundError as e:
        logging.error(f"File error: {e}")
        return 1
    except ValueError as e:
        logging.error(f"Validation error: {e}")
        return 1
    except KeyboardInterrupt:
        logging.warning("Training interrupted by user")
        return 130
    except Exception as e:
        logging.error(f"Unexpected error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())

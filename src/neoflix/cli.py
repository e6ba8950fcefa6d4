import argparse
import atexit
import json
import logging
import sys

from .config import DEFAULT_LIMIT
from .database import get_store, close_store
from .errors import InvalidParameterError, NeoflixError
from .favorites import FavoriteService
from .fixtures import offline_genres, offline_movies, offline_people, seed
from .genres import GenreService
from .movies import MovieService
from .params import parse_params
from .people import PeopleService
from .ratings import RatingService

logger = logging.getLogger(__name__)

# Register cleanup on exit
atexit.register(close_store)


def _params(args: argparse.Namespace):
    return parse_params(
        query=getattr(args, "query", None),
        sort=getattr(args, "sort", None),
        order=getattr(args, "order", None),
        limit=getattr(args, "limit", None),
        skip=getattr(args, "skip", None),
    )


def _emit(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _validate_rating(value: str) -> int:
    try:
        rating = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"rating must be an integer, got '{value}'") from None
    if not 1 <= rating <= 5:
        raise argparse.ArgumentTypeError(f"rating must be between 1 and 5, got {rating}")
    return rating


def cmd_movies(args: argparse.Namespace) -> None:
    """List movies, from the graph or from fixtures with --offline."""
    params = _params(args)
    if args.offline:
        _emit(offline_movies(params))
        return
    _emit(MovieService(get_store()).all(params, args.user))


def cmd_movie(args: argparse.Namespace) -> None:
    _emit(MovieService(get_store()).find_by_id(args.movie_id, args.user))


def cmd_similar(args: argparse.Namespace) -> None:
    """Movies similar to a movie, ranked by score."""
    _emit(MovieService(get_store()).similar(args.movie_id, _params(args), args.user))


def cmd_genre_movies(args: argparse.Namespace) -> None:
    _emit(MovieService(get_store()).by_genre(args.name, _params(args), args.user))


def cmd_actor_movies(args: argparse.Namespace) -> None:
    _emit(MovieService(get_store()).for_actor(args.person_id, _params(args), args.user))


def cmd_director_movies(args: argparse.Namespace) -> None:
    _emit(MovieService(get_store()).for_director(args.person_id, _params(args), args.user))


def cmd_people(args: argparse.Namespace) -> None:
    params = _params(args)
    if args.offline:
        _emit(offline_people(params))
        return
    _emit(PeopleService(get_store()).all(params))


def cmd_person(args: argparse.Namespace) -> None:
    _emit(PeopleService(get_store()).find_by_id(args.person_id))


def cmd_similar_people(args: argparse.Namespace) -> None:
    _emit(PeopleService(get_store()).similar(args.person_id, _params(args)))


def cmd_genres(args: argparse.Namespace) -> None:
    if args.offline:
        _emit(offline_genres())
        return
    _emit(GenreService(get_store()).all())


def cmd_genre(args: argparse.Namespace) -> None:
    _emit(GenreService(get_store()).find(args.name))


def cmd_favorites(args: argparse.Namespace) -> None:
    _emit(FavoriteService(get_store()).all(args.user, _params(args)))


def cmd_favorite_add(args: argparse.Namespace) -> None:
    _emit(FavoriteService(get_store()).add(args.user, args.movie_id))


def cmd_favorite_remove(args: argparse.Namespace) -> None:
    _emit(FavoriteService(get_store()).remove(args.user, args.movie_id))


def cmd_rate(args: argparse.Namespace) -> None:
    _emit(RatingService(get_store()).add(args.user, args.movie_id, args.rating))


def cmd_ratings(args: argparse.Namespace) -> None:
    _emit(RatingService(get_store()).for_movie(args.movie_id, _params(args)))


def cmd_seed(args: argparse.Namespace) -> None:
    """Load the bundled fixtures into the graph."""
    counts = seed(get_store(), batch_size=args.batch, progress=not args.quiet)
    logger.info("Seed complete: " + ", ".join(f"{n} {kind}" for kind, n in counts.items()))


def _add_paging(parser: argparse.ArgumentParser, sort_help: str = "Sort key", sortable: bool = True) -> None:
    if sortable:
        parser.add_argument("--sort", help=sort_help)
        parser.add_argument("--order", choices=["asc", "desc", "ASC", "DESC"], help="Sort direction")
    parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help=f"Rows to return (default: {DEFAULT_LIMIT})")
    parser.add_argument("--skip", type=int, default=0, help="Rows to skip")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Neoflix movie catalog")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--user", help="Acting user id (enables favorite flags)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Movies
    movies_parser = subparsers.add_parser("movies", help="List movies")
    _add_paging(movies_parser, "title, released or imdbRating (default: title)")
    movies_parser.add_argument("--offline", action="store_true", help="Answer from bundled fixtures")
    movies_parser.set_defaults(func=cmd_movies)

    movie_parser = subparsers.add_parser("movie", help="Show one movie with cast, directors and genres")
    movie_parser.add_argument("movie_id", help="Movie tmdbId")
    movie_parser.set_defaults(func=cmd_movie)

    similar_parser = subparsers.add_parser("similar", help="Movies similar to a movie, ranked by score")
    similar_parser.add_argument("movie_id", help="Movie tmdbId")
    _add_paging(similar_parser, sortable=False)
    similar_parser.set_defaults(func=cmd_similar)

    genre_movies_parser = subparsers.add_parser("genre-movies", help="Movies in a genre")
    genre_movies_parser.add_argument("name", help="Genre name (e.g., 'Comedy')")
    _add_paging(genre_movies_parser)
    genre_movies_parser.set_defaults(func=cmd_genre_movies)

    actor_movies_parser = subparsers.add_parser("actor-movies", help="Movies a person acted in")
    actor_movies_parser.add_argument("person_id", help="Person tmdbId")
    _add_paging(actor_movies_parser)
    actor_movies_parser.set_defaults(func=cmd_actor_movies)

    director_movies_parser = subparsers.add_parser("director-movies", help="Movies a person directed")
    director_movies_parser.add_argument("person_id", help="Person tmdbId")
    _add_paging(director_movies_parser)
    director_movies_parser.set_defaults(func=cmd_director_movies)

    # People
    people_parser = subparsers.add_parser("people", help="List people")
    people_parser.add_argument("--query", "-q", help="Only names containing this text")
    _add_paging(people_parser, "name (default: name)")
    people_parser.add_argument("--offline", action="store_true", help="Answer from bundled fixtures")
    people_parser.set_defaults(func=cmd_people)

    person_parser = subparsers.add_parser("person", help="Show one person")
    person_parser.add_argument("person_id", help="Person tmdbId")
    person_parser.set_defaults(func=cmd_person)

    similar_people_parser = subparsers.add_parser("similar-people", help="People who share the most movies")
    similar_people_parser.add_argument("person_id", help="Person tmdbId")
    _add_paging(similar_people_parser, sortable=False)
    similar_people_parser.set_defaults(func=cmd_similar_people)

    # Genres
    genres_parser = subparsers.add_parser("genres", help="List genres")
    genres_parser.add_argument("--offline", action="store_true", help="Answer from bundled fixtures")
    genres_parser.set_defaults(func=cmd_genres)

    genre_parser = subparsers.add_parser("genre", help="Show one genre")
    genre_parser.add_argument("name", help="Genre name")
    genre_parser.set_defaults(func=cmd_genre)

    # Favorites and ratings (require --user)
    favorites_parser = subparsers.add_parser("favorites", help="List the user's favorite movies")
    _add_paging(favorites_parser)
    favorites_parser.set_defaults(func=cmd_favorites, needs_user=True)

    favorite_add_parser = subparsers.add_parser("favorite-add", help="Add a movie to the user's favorites")
    favorite_add_parser.add_argument("movie_id", help="Movie tmdbId")
    favorite_add_parser.set_defaults(func=cmd_favorite_add, needs_user=True)

    favorite_remove_parser = subparsers.add_parser("favorite-remove", help="Remove a movie from the user's favorites")
    favorite_remove_parser.add_argument("movie_id", help="Movie tmdbId")
    favorite_remove_parser.set_defaults(func=cmd_favorite_remove, needs_user=True)

    rate_parser = subparsers.add_parser("rate", help="Rate a movie from 1 to 5")
    rate_parser.add_argument("movie_id", help="Movie tmdbId")
    rate_parser.add_argument("rating", type=_validate_rating, help="Rating (1-5)")
    rate_parser.set_defaults(func=cmd_rate, needs_user=True)

    ratings_parser = subparsers.add_parser("ratings", help="Reviews of a movie")
    ratings_parser.add_argument("movie_id", help="Movie tmdbId")
    _add_paging(ratings_parser, "timestamp or rating (default: timestamp, newest first)")
    ratings_parser.set_defaults(func=cmd_ratings)

    seed_parser = subparsers.add_parser("seed", help="Import bundled fixtures into the graph")
    seed_parser.add_argument("--batch", type=int, help="Rows per write transaction")
    seed_parser.add_argument("--quiet", action="store_true", help="Hide progress bars")
    seed_parser.set_defaults(func=cmd_seed)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging based on verbosity
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if getattr(args, "needs_user", False) and not args.user:
        parser.error(f"'{args.command}' requires --user")

    try:
        args.func(args)
    except InvalidParameterError as e:
        logger.error(f"Invalid {e.parameter}: {e}")
        return 2
    except NeoflixError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""Book List CLI - search the catalog and manage a personal library."""
import argparse
import asyncio
import csv
import sys
import json
from typing import Optional, Tuple
from tabulate import tabulate
from booklist.client import GoogleBooksClient
from booklist.async_client import AsyncGoogleBooksClient
from booklist.config import Config
from booklist.database import Database
from booklist.dedupe import process
from booklist.errors import BooklistError, friendly_message
from booklist.library import Library
from booklist.storage import DatabaseStore, JsonFileStore
import logging

logger = logging.getLogger(__name__)


def setup_library(config: Config) -> Tuple[Library, Optional[Database]]:
    """Open the configured library store (and database, if used)."""
    if config.STORAGE_BACKEND == "postgres":
        db = Database(config.DATABASE_URL)
        db.init_schema()
        return Library(DatabaseStore(db, config.LIBRARY_KEY)), db

    return Library(JsonFileStore(config.LIBRARY_PATH, config.LIBRARY_KEY)), None


def _truncate(text: str, width: int) -> str:
    return text[:width] + "..." if len(text) > width else text


async def search_books_async(args, config: Config):
    """Search for books using async client."""
    if not args.query.strip():
        return []

    async with AsyncGoogleBooksClient(
        api_key=config.GOOGLE_BOOKS_API_KEY,
        timeout=config.DEFAULT_TIMEOUT,
        max_concurrent=args.parallel
    ) as client:

        logger.info(f"Searching for: {args.query}")

        # Fetch from API (paginated if needed)
        if args.limit > 40:
            items = await client.paginated_search(
                args.query.strip(),
                total_results=args.limit,
                results_per_page=40
            )
        else:
            items = await client.fetch_catalog(args.query, args.limit)

    return process(items, strategy=args.strategy)


def search_books_sync(args, config: Config, db: Optional[Database]):
    """Search for books using sync client, caching through the database."""
    if not args.query.strip():
        return []

    with GoogleBooksClient(
        api_key=config.GOOGLE_BOOKS_API_KEY,
        timeout=config.DEFAULT_TIMEOUT,
        max_retries=config.DEFAULT_MAX_RETRIES
    ) as client:

        # Fetch from API (paginated if needed)
        items = client.paginated_search(
            args.query,
            total_results=args.limit,
            cache_db=db if not args.no_cache else None,
            cache_ttl=args.cache_ttl
        )

    return process(items, strategy=args.strategy)


def search_command(args, config: Config):
    library, db = setup_library(config)

    try:
        if args.use_async:
            books = asyncio.run(search_books_async(args, config))
        else:
            books = search_books_sync(args, config, db)

        if not books:
            print(f'No books found for "{args.query}"')
            return

        display_books(books, args.format, library.saved_ids())

    finally:
        if db:
            db.close()


def display_books(books, format_type: str, saved_ids=frozenset()):
    """Display books in specified format."""
    if format_type == "table":
        headers = ["", "ID", "Title", "Author", "ISBN", "Cover", "Description"]
        rows = [
            [
                "✓" if book.id in saved_ids else "",
                book.id,
                _truncate(book.title, 50),
                _truncate(book.author, 30),
                book.isbn or "N/A",
                "yes" if book.thumbnail else "no",
                "yes" if book.description else "no"
            ]
            for book in books
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        print(json.dumps([book.to_dict() for book in books], indent=2))

    elif format_type == "compact":
        for i, book in enumerate(books, 1):
            marker = " [added]" if book.id in saved_ids else ""
            print(f"{i}. {book.title} - {book.author}{marker}")


def add_command(args, config: Config):
    """Add a catalog volume to the library by id."""
    library, db = setup_library(config)

    try:
        with GoogleBooksClient(
            api_key=config.GOOGLE_BOOKS_API_KEY,
            timeout=config.DEFAULT_TIMEOUT,
            max_retries=config.DEFAULT_MAX_RETRIES
        ) as client:
            record = client.fetch_book_by_id(args.book_id)

        if record is None:
            print(f"No catalog entry with id {args.book_id}")
            sys.exit(1)

        saved = library.add_book(record, comments=args.comments)
        print(f'"{saved.title}" added to your library')

    finally:
        if db:
            db.close()


def add_manual_command(args, config: Config):
    library, db = setup_library(config)

    try:
        saved = library.add_manual_book(args.title, args.author, args.comments)
        print(f'"{saved.title}" added to your library (id: {saved.id})')
    finally:
        if db:
            db.close()


def list_command(args, config: Config):
    library, db = setup_library(config)

    try:
        books = library.load_books()
        if not books:
            print("Your library is empty")
            return

        headers = ["ID", "Title", "Author", "Added", "Notes"]
        rows = [
            [
                book.id,
                _truncate(book.title, 50),
                _truncate(book.author, 30),
                book.date_added[:10],
                _truncate(book.comments, 40)
            ]
            for book in books
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    finally:
        if db:
            db.close()


def show_command(args, config: Config):
    library, db = setup_library(config)

    try:
        book = library.get_book(args.book_id)
        rows = [
            ["Title", book.title],
            ["Author", book.author],
            ["ISBN", book.isbn or "N/A"],
            ["Cover", book.thumbnail or "N/A"],
            ["Added", book.date_added],
            ["Last edited", book.last_edited or "Never"],
            ["Description", book.description or ""],
            ["Notes", book.comments or ""],
        ]
        print("\n" + tabulate(rows, tablefmt="plain"))

    finally:
        if db:
            db.close()


def comment_command(args, config: Config):
    library, db = setup_library(config)

    try:
        book = library.update_comments(args.book_id, args.comments)
        print(f'Notes updated for "{book.title}"')
    finally:
        if db:
            db.close()


def delete_command(args, config: Config):
    library, db = setup_library(config)

    try:
        book = library.get_book(args.book_id)
        library.delete_book(args.book_id)
        print(f'"{book.title}" removed from your library')
    finally:
        if db:
            db.close()


def export_data(args, config: Config):
    """Export the saved library."""
    library, db = setup_library(config)

    try:
        books = library.load_books()

        if args.format == "json":
            data = [book.to_dict() for book in books]

            if args.output:
                with open(args.output, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2)
                logger.info(f"✅ Exported {len(books)} books to {args.output}")
            else:
                print(json.dumps(data, indent=2))

        elif args.format == "csv":
            output_file = args.output or "books_export.csv"
            with open(output_file, 'w', newline='', encoding='utf-8') as f:
                writer = csv.writer(f)
                writer.writerow(["ID", "Title", "Author", "ISBN", "Added", "Last Edited", "Comments"])

                for book in books:
                    writer.writerow([
                        book.id,
                        book.title,
                        book.author,
                        book.isbn or "",
                        book.date_added,
                        book.last_edited or "",
                        book.comments
                    ])

            logger.info(f"✅ Exported {len(books)} books to {output_file}")

    finally:
        if db:
            db.close()


def show_stats(args, config: Config):
    """Show library and database statistics."""
    library, db = setup_library(config)

    try:
        books = library.load_books()

        print("\n" + "=" * 50)
        print("LIBRARY STATISTICS")
        print("=" * 50)
        print(f"Saved books: {len(books)}")
        print(f"With notes: {sum(1 for b in books if b.comments)}")
        print(f"With ISBN: {sum(1 for b in books if b.isbn)}")

        if db:
            stats = db.get_stats()
            print(f"Cached API responses: {stats['cached_responses']}")
            print(f"Expired cache entries: {stats['expired_cache_entries']}")
        print("=" * 50 + "\n")

        # Cleanup if requested
        if args.cleanup and db:
            deleted = db.cleanup_expired_cache()
            print(f"✅ Cleaned up {deleted} expired cache entries\n")

    finally:
        if db:
            db.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Book List - search the catalog and keep a personal library",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Search with defaults
  %(prog)s search "animal farm"

  # Save a result and annotate it
  %(prog)s add zyTCAlFPjgYC --comments "Read in school"
  %(prog)s comment zyTCAlFPjgYC "Re-read 2024"

  # Export data
  %(prog)s export --format json --output books.json
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Search command
    search_parser = subparsers.add_parser("search", help="Search for books")
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("--limit", type=int, default=Config.SEARCH_MAX_RESULTS, help="Raw results to fetch (default: 40)")
    search_parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")
    search_parser.add_argument("--strategy", choices=["replace", "merge"], default="replace", help="How duplicate results are combined")
    search_parser.add_argument("--parallel", type=int, default=5, help="Concurrent requests (default: 5)")
    search_parser.add_argument("--cache-ttl", type=int, default=Config.DEFAULT_CACHE_TTL, help="Cache TTL in seconds (default: 3600)")
    search_parser.add_argument("--no-cache", action="store_true", help="Disable caching")
    search_parser.add_argument("--async", dest="use_async", action="store_true", help="Use async client")

    # Library commands
    add_parser = subparsers.add_parser("add", help="Add a catalog book to your library")
    add_parser.add_argument("book_id", help="Catalog volume id")
    add_parser.add_argument("--comments", default="", help="Personal notes")

    manual_parser = subparsers.add_parser("add-manual", help="Add a book by hand")
    manual_parser.add_argument("--title", required=True, help="Book title")
    manual_parser.add_argument("--author", required=True, help="Book author")
    manual_parser.add_argument("--comments", default="", help="Personal notes")

    subparsers.add_parser("list", help="List saved books")

    show_parser = subparsers.add_parser("show", help="Show a saved book")
    show_parser.add_argument("book_id", help="Saved book id")

    comment_parser = subparsers.add_parser("comment", help="Replace a saved book's notes")
    comment_parser.add_argument("book_id", help="Saved book id")
    comment_parser.add_argument("comments", help="New notes")

    delete_parser = subparsers.add_parser("delete", help="Remove a saved book")
    delete_parser.add_argument("book_id", help="Saved book id")

    # Stats command
    stats_parser = subparsers.add_parser("stats", help="Show library statistics")
    stats_parser.add_argument("--cleanup", action="store_true", help="Clean up expired cache")

    # Export command
    export_parser = subparsers.add_parser("export", help="Export saved books")
    export_parser.add_argument("--format", choices=["json", "csv"], default="json", help="Export format")
    export_parser.add_argument("--output", help="Output file (default: stdout for JSON)")

    return parser


COMMANDS = {
    "search": search_command,
    "add": add_command,
    "add-manual": add_manual_command,
    "list": list_command,
    "show": show_command,
    "comment": comment_command,
    "delete": delete_command,
    "export": export_data,
    "stats": show_stats,
}


def main(argv=None):
    """Main CLI entry point."""
    # Configure logging
    logging.basicConfig(
        level=logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = Config()

    try:
        COMMANDS[args.command](args, config)

    except KeyboardInterrupt:
        logger.info("\n⚠️  Interrupted by user")
        sys.exit(0)
    except BooklistError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"❌ {friendly_message(e)}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.error(f"❌ Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

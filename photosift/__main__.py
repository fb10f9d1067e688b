"""
Allow running the package with: python -m photosift

By default, runs the scanning CLI. Use the 'config' subcommand to inspect or
create the user configuration file.

Examples:
    python -m photosift /path/to/photos      # Scan a directory
    python -m photosift config               # Show current settings
    python -m photosift config --init        # Create example config file
"""

import sys


def show_config(argv: list[str]) -> int:
    """Print the configuration file location and effective settings."""
    from .user_config import get_user_config

    config = get_user_config()

    if '--init' in argv or '-i' in argv:
        if config.create_example_config():
            print("Created example configuration file at:")
            print(f"  {config.config_file_path}")
            print("\nEdit this file to customize photosift settings.")
            return 0
        print("Failed to create configuration file.")
        return 1

    print(f"Configuration file: {config.config_file_path}")
    if config.config_file_path.exists():
        print("Status: found")
    else:
        print("Status: not found (using defaults)")
        print("\nRun 'python -m photosift config --init' to create one.")

    print("\nCurrent settings:")
    print(f"  default_workers: {config.default_workers}")
    print(f"  decode_concurrency: {config.decode_concurrency}")
    print(f"  adaptive_windows: {config.adaptive_windows}")
    print(f"  flag_noise: {config.flag_noise}")
    print(f"  max_image_pixels: {config.max_image_pixels:,}")
    print(f"  cache_max_age_days: {config.cache_max_age_days}")
    print(f"  cache_db_file: {config.cache_db_file}")

    try:
        similarity = config.similarity_config()
    except ValueError as e:
        print(f"\nInvalid similarity settings: {e}")
        return 1
    print("\nSimilarity:")
    for name, value in similarity.to_dict().items():
        print(f"  {name}: {value}")
    return 0


def main(argv=None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if argv and argv[0] == 'config':
        return show_config(argv[1:])

    from .cli import main as cli_main
    return cli_main(argv)


if __name__ == '__main__':
    sys.exit(main())

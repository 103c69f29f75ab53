"""
Domain Watcher

Watches a domain name and sends an email the moment it becomes available
for registration.
"""

__version__ = "0.1.0"


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI. Returns the process exit code."""
    import argparse
    from pathlib import Path

    parser = argparse.ArgumentParser(
        prog="domain-watcher",
        description="Watch a domain name and get an email when it becomes available",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s                       Run the watch (creates the config on first run)
    %(prog)s --setup               Configure interactively
    %(prog)s --show-config         Show the current configuration
    %(prog)s --check               Check the domain once and exit

Environment:
    DOMAIN_WATCHER_CONFIG       Path to the config file
    DOMAIN_WATCHER_API_KEY      whoisjson.com API key
    DOMAIN_WATCHER_SMTP_PASS    SMTP password
        """
    )
    parser.add_argument(
        "--config",
        type=Path,
        metavar="PATH",
        default=None,
        help="Path to the config file"
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        metavar="PATH",
        default=None,
        help="Log file used when logging is enabled (default: ./domain_watcher.log)"
    )
    parser.add_argument(
        "--skip-smtp-check",
        action="store_true",
        help="Don't send the SMTP validation email before watching"
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--setup",
        action="store_true",
        help="Configure interactively and save the config file"
    )
    mode.add_argument(
        "--show-config",
        action="store_true",
        help="Show the current configuration (secrets masked)"
    )
    mode.add_argument(
        "--check",
        action="store_true",
        help="Check the domain once and exit"
    )
    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"domain-watcher {__version__}"
    )

    args = parser.parse_args(argv)

    from .config import get_config_file
    from .console import StatusReporter

    config_file = args.config or get_config_file()

    with StatusReporter() as reporter:
        try:
            if args.setup:
                return 0 if run_setup(config_file, reporter) else 1
            if args.show_config:
                return show_config(config_file, reporter)

            config = load_or_create_config(config_file, reporter)
        except (KeyboardInterrupt, EOFError):
            print()
            reporter.info("Aborted.", "Setup was interrupted.")
            return 1
        if config is None:
            return 1

        try:
            if args.check:
                return check_once(config, reporter)

            if not args.skip_smtp_check and not validate_smtp(config, reporter):
                return 1
        except KeyboardInterrupt:
            print()
            reporter.info("Shutting down.", "Bye-bye.")
            return 0

    return run_watch(config, args.log_file)


def load_or_create_config(config_file, reporter):
    """
    Load the config file, or create it interactively if it doesn't exist.

    Returns:
        WatchConfig, or None if the config is invalid
    """
    from .config import ConfigError, default_config, load_config, save_config

    reporter.info("Starting.", "Attempting to load or create configuration file.")

    if not config_file.exists():
        try:
            save_config(default_config(), config_file)
        except OSError as e:
            reporter.error("Error", f"Failed to write default config to {config_file}: {e}")
            return None
        reporter.success(
            "Default config file created.",
            f"Created default config file at {config_file}. You can edit it later with your settings."
        )
        config = prompt_for_config(reporter)
        save_config(config, config_file)
        reporter.success("Configuration stored.")
        return config

    reporter.info("Config file found.", "Loading.")
    try:
        config = load_config(config_file)
    except ConfigError as e:
        reporter.error(
            "Invalid config",
            f"{e}. Please change the config file and run again."
        )
        return None

    reporter.success("Config file loaded.")
    return config


def prompt(message: str) -> str:
    """Read one trimmed line from the terminal."""
    return input(message).strip()


def prompt_secret(message: str) -> str:
    """Read a secret without echoing it."""
    import getpass
    return getpass.getpass(message).strip()


def _prompt_until(message: str, parse, reporter, secret: bool = False):
    """Prompt until parse() accepts the input; parse raises ValueError with a hint."""
    while True:
        value = prompt_secret(message) if secret else prompt(message)
        try:
            return parse(value)
        except ValueError as e:
            reporter.error("Not quite.", str(e))


def _parse_port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise ValueError("Invalid input. Please enter an integer.") from None
    if port == 0:
        raise ValueError("A port can't be zero, can it?")
    if not 0 < port <= 65535:
        raise ValueError("A port must be between 1 and 65535.")
    return port


def _parse_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in ("true", "yes", "y"):
        return True
    if lowered in ("false", "no", "n"):
        return False
    raise ValueError("Invalid input. Please enter 'true' or 'false'.")


def _parse_frequency(value: str) -> int:
    from .config import MAX_FREQUENCY
    try:
        frequency = int(value)
    except ValueError:
        raise ValueError("Invalid input. Please enter an integer.") from None
    if frequency <= 0:
        raise ValueError("The check frequency must be at least one second.")
    if frequency > MAX_FREQUENCY:
        raise ValueError(f"The check frequency can be at most {MAX_FREQUENCY} seconds.")
    return frequency


def _parse_email(value: str) -> str:
    from .config import is_valid_email
    if not is_valid_email(value):
        raise ValueError(f"{value!r} is not a valid email address.")
    return value


def _parse_domain(value: str) -> str:
    from .config import is_valid_domain
    domain = value.lower().rstrip(".")
    if not is_valid_domain(domain):
        raise ValueError(f"{value!r} is not a valid domain name.")
    return domain


def _parse_required(value: str) -> str:
    if not value:
        raise ValueError("This value is required.")
    return value


def prompt_for_config(reporter):
    """Collect every config value interactively."""
    from .config import DEFAULT_PROVIDER, WatchConfig

    smtp_server = _prompt_until("SMTP server: ", _parse_required, reporter)
    smtp_port = _prompt_until("SMTP port: ", _parse_port, reporter)
    smtp_user = _prompt_until("SMTP username: ", _parse_email, reporter)
    smtp_pass = _prompt_until("SMTP password: ", _parse_required, reporter, secret=True)
    domain_name = _prompt_until("Domain name to watch: ", _parse_domain, reporter)
    email = _prompt_until("Notification email: ", _parse_email, reporter)
    log = _prompt_until("Log results (true/false): ", _parse_bool, reporter)
    api_key = _prompt_until("API key: ", _parse_required, reporter, secret=True)
    frequency = _prompt_until("Check frequency (seconds): ", _parse_frequency, reporter)

    config = WatchConfig(
        smtp_server=smtp_server,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        domain_name=domain_name,
        email=email,
        log=log,
        provider=DEFAULT_PROVIDER,
        api_key=api_key,
        frequency=frequency,
    )
    config.validate()
    return config


def run_setup(config_file, reporter) -> bool:
    """Interactive setup wizard."""
    from .config import save_config

    print("=" * 50)
    print("Domain Watcher - Setup")
    print("=" * 50)
    print()

    if config_file.exists():
        print(f"Config file: {config_file}")
        response = input("Overwrite the existing configuration? [y/N]: ").strip().lower()
        if response != "y":
            print("\nSetup complete. Your current configuration is preserved.")
            return True
        print()

    config = prompt_for_config(reporter)
    try:
        save_config(config, config_file)
    except OSError as e:
        reporter.error("Error", f"Failed to save config to {config_file}: {e}")
        return False

    reporter.success("Configuration stored.", str(config_file))
    return validate_smtp(config, reporter)


def show_config(config_file, reporter) -> int:
    """Show current configuration."""
    from .config import ConfigError, get_secret_source, load_config, mask_secret

    print("Configuration")
    print("=" * 50)
    print()
    print(f"Config file: {config_file}")
    print(f"  Exists: {config_file.exists()}")
    print()

    if not config_file.exists():
        return 1

    try:
        config = load_config(config_file)
    except ConfigError as e:
        reporter.error("Invalid config", str(e))
        return 1

    print(f"Domain:        {config.domain_name}")
    print(f"Provider:      {config.provider}")
    print(f"Frequency:     every {config.frequency} seconds")
    print(f"Notify:        {config.email}")
    print(f"SMTP relay:    {config.smtp_server}:{config.smtp_port} as {config.smtp_user}")
    print(f"Logging:       {'enabled' if config.log else 'disabled'}")
    print(f"API key:       {mask_secret(config.api_key)} (source: {get_secret_source('api_key', config.api_key)})")
    print(f"SMTP password: {mask_secret(config.smtp_pass)} (source: {get_secret_source('smtp_pass', config.smtp_pass)})")
    return 0


def validate_smtp(config, reporter) -> bool:
    """Send the SMTP validation email. Returns True if the relay accepted it."""
    from .notifier import NotificationError, send_test_message

    reporter.info("Starting.", "Attempting to validate SMTP credentials.")
    try:
        send_test_message(config)
    except NotificationError as e:
        reporter.error(
            "Mail error",
            f"{e}. Please edit the configuration file and start again."
        )
        return False

    reporter.success("Passed.", "Check your inbox for the test email.")
    return True


def check_once(config, reporter) -> int:
    """Check the domain once and print the result."""
    import asyncio
    from .whois_client import check_availability

    result = asyncio.run(check_availability(config.domain_name, config.api_key))

    if result.failed:
        reporter.error("[!]", f"{result.domain}: ERROR: {result.describe()}")
        return 1
    if result.available:
        reporter.success("[+]", f"{result.domain}: AVAILABLE")
    else:
        reporter.info("[-]", f"{result.domain}: TAKEN")
    return 0


def _install_signal_handlers(shutdown):
    """
    Route SIGINT and SIGTERM to the shutdown event.

    Returns:
        A callable that puts the previous handlers back
    """
    import asyncio
    import signal

    loop = asyncio.get_running_loop()
    previous = {}
    on_loop = set()
    for sig in (signal.SIGINT, signal.SIGTERM):
        previous[sig] = signal.getsignal(sig)
        try:
            loop.add_signal_handler(sig, shutdown.set)
            on_loop.add(sig)
        except NotImplementedError:
            # Windows event loops don't support add_signal_handler
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(shutdown.set))

    def restore() -> None:
        for sig, handler in previous.items():
            if sig in on_loop:
                loop.remove_signal_handler(sig)
            if handler is not None:
                signal.signal(sig, handler)

    return restore


async def _watch(config, reporter):
    import asyncio
    from .watcher import watch_domain

    shutdown = asyncio.Event()
    restore_signals = _install_signal_handlers(shutdown)
    try:
        return await watch_domain(config, shutdown, reporter=reporter)
    finally:
        restore_signals()


def run_watch(config, log_file=None) -> int:
    """Run the watch until it terminates and return the exit code."""
    import asyncio
    from .console import DEFAULT_LOG_FILE, StatusReporter
    from .watcher import WatchOutcome, exit_code

    log_path = (log_file or DEFAULT_LOG_FILE) if config.log else None

    with StatusReporter(log_file=log_path) as reporter:
        reporter.info("Watching.", f"Checking {config.domain_name} every {config.frequency} seconds.")
        outcome = asyncio.run(_watch(config, reporter))
        if outcome == WatchOutcome.SHUTDOWN:
            reporter.info("Shutting down.", "Bye-bye.")

    return exit_code(outcome)

import argparse
import logging

from dotenv import load_dotenv

from toetsgen.cli.access_commands import (
    handle_approve,
    handle_create_user,
    handle_list_requests,
    handle_revoke,
    handle_unapprove,
    register_access_commands,
)
from toetsgen.cli.exam_commands import (
    handle_export_exam,
    handle_generate,
    handle_list_exams,
    handle_suggest_topics,
    register_exam_commands,
)
from toetsgen.cli.provider_commands import handle_provider_info, register_provider_commands
from toetsgen.web.config_utils import load_config

COMMAND_HANDLERS = {
    "list-requests": handle_list_requests,
    "approve": handle_approve,
    "unapprove": handle_unapprove,
    "revoke": handle_revoke,
    "create-user": handle_create_user,
    "generate": handle_generate,
    "list-exams": handle_list_exams,
    "export-exam": handle_export_exam,
    "suggest-topics": handle_suggest_topics,
    "provider-info": handle_provider_info,
}


def handle_web(config, args):
    """Handles the "web" command: run the development server."""
    from toetsgen.web.app import create_app

    app = create_app(config)
    app.run(host=args.host, port=args.port, debug=args.debug)


def build_parser():
    parser = argparse.ArgumentParser(description="Toetsgenerator CLI.")
    parser.add_argument("--config", default="config.yaml", help="Path to config.yaml.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- Web Command ---
    parser_web = subparsers.add_parser("web", help="Run the web interface (development server).")
    parser_web.add_argument("--host", default="127.0.0.1", help="Host to bind to.")
    parser_web.add_argument("--port", type=int, default=5000, help="Port to listen on.")
    parser_web.add_argument("--debug", action="store_true", help="Enable Flask debug mode.")

    register_access_commands(subparsers)
    register_exam_commands(subparsers)
    register_provider_commands(subparsers)
    return parser


def main(argv=None):
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
    except FileNotFoundError:
        print(f"Error: {args.config} not found.")
        return

    if args.command == "web":
        handle_web(config, args)
    else:
        COMMAND_HANDLERS[args.command](config, args)


if __name__ == "__main__":
    main()

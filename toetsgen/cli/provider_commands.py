"""
LLM provider info CLI commands.
"""

from toetsgen.llm_provider import PROVIDER_REGISTRY, get_provider_info


def register_provider_commands(subparsers):
    """Register provider subcommands."""
    subparsers.add_parser("provider-info", help="Show the configured LLM provider and its status.")


def handle_provider_info(config, args):
    """Show current provider, model and whether its API key is set."""
    info = get_provider_info(config)

    print(f"\nCurrent provider: {info['name']} ({info['label']})")
    print(f"Model: {info['model'] or '-'}")
    print(f"API key configured: {'Yes' if info['configured'] else 'No'}")

    print(f"\n{'Key':<20} {'Label':<30} {'Env var'}")
    print(f"{'---':<20} {'---':<30} {'---'}")
    for key, meta in PROVIDER_REGISTRY.items():
        marker = "*" if key == info["name"] else " "
        print(f"{marker}{key:<19} {meta['label']:<30} {meta.get('env_key') or '-'}")

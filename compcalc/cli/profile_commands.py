"""Profile CLI commands for Comp Calc.

Manages the user profile (profile.yaml) - compensation history, RSU grants
and exchange rates.
"""

import click
import yaml

from compcalc.sdk import (
    COMPANIES,
    get_profile_path,
    load_settings,
    save_profile,
    sample_profile,
    ProfileNotFoundError,
    validate_profile,
)


def _display_validation(validation, show_contents=True, raise_on_errors=False):
    """Display validation results consistently across commands.

    Args:
        validation: ProfileValidationResult from validate_profile()
        show_contents: Whether to show full profile YAML
        raise_on_errors: If True, raise ClickException for validation errors

    Returns:
        True if valid (no errors), False if has errors
    """
    if validation.errors:
        click.echo()
        click.echo("Validation Errors (profile is invalid):")
        for error in validation.errors:
            click.echo(f"  ! {error}")
        click.echo()
        click.echo(f"Profile path: {validation.location_path}")

        if raise_on_errors:
            raise click.ClickException("Profile has validation errors. Fix them before continuing.")

    config = validation.config
    if config is not None:
        click.echo()
        click.echo("Summary:")
        click.echo(f"  Company: {config.company} ({config.symbol})")
        click.echo(f"  Currencies: base {config.base_currency}, RSU {config.rsu_currency}")
        click.echo(f"  Salary configs: {len(config.salary_configs)}")
        click.echo(f"  Bonus configs: {len(config.bonus_configs)}")
        click.echo(f"  RSU grants: {len(config.rsu_grants)}")
        click.echo(f"  Vesting months: {', '.join(str(m) for m in config.vesting_calendar)}")

    if validation.warnings:
        click.echo()
        click.echo("Warnings:")
        for warning in validation.warnings:
            click.echo(f"  - {warning}")

    if show_contents:
        click.echo()
        click.echo("---")
        click.echo(yaml.dump(validation.profile, default_flow_style=False, sort_keys=False))

    return validation.valid


@click.group()
def profile():
    """Manage your profile configuration (profile.yaml).

    Profile contains your compensation data:
    - compensation: salary/bonus history, RSU grants, stock price, currencies
    - exchange_rates: FROM -> {TO: rate}
    """
    pass


@profile.command("init")
@click.option("--company", type=click.Choice(sorted(COMPANIES)), default="Meta", show_default=True,
              help="Employer preset for the stock symbol and bonus target.")
@click.option("--force", is_flag=True, help="Overwrite an existing profile.")
def profile_init(company, force):
    """Create a starter profile to edit."""
    from . import context

    path = get_profile_path(require_exists=False)
    if path.exists() and not force:
        raise click.ClickException(f"Profile already exists: {path}\nUse --force to overwrite.")

    save_profile(sample_profile(context.today(), company), path)
    click.echo(f"Created: {path}")
    click.echo()
    click.echo("Edit the compensation section, then run:")
    click.echo("  comp-calc profile validate")


@profile.command("show")
def profile_show():
    """Show the active profile, its location, and a summary."""
    profile_path = get_profile_path(require_exists=False)

    if load_settings().get("profile"):
        location_label = "custom"
    elif profile_path.exists():
        location_label = "central (default)"
    else:
        location_label = "not created"

    click.echo(f"Profile: {profile_path}")
    click.echo(f"Location: {location_label}")

    if not profile_path.exists():
        click.echo()
        click.echo("Profile does not exist yet. Create with:")
        click.echo("  comp-calc profile init")
        return

    try:
        validation = validate_profile()
    except ProfileNotFoundError as e:
        raise click.ClickException(str(e))
    except yaml.YAMLError as e:
        raise click.ClickException(f"Invalid YAML in {profile_path}: {e}")

    _display_validation(validation, show_contents=True)


@profile.command("validate")
def profile_validate():
    """Validate the profile; exits non-zero on errors."""
    try:
        validation = validate_profile()
    except ProfileNotFoundError as e:
        raise click.ClickException(str(e))
    except yaml.YAMLError as e:
        raise click.ClickException(f"Invalid YAML: {e}")

    _display_validation(validation, show_contents=False, raise_on_errors=True)
    click.echo()
    click.secho("Profile is valid.", fg="green")


@profile.command("use")
@click.argument("profile_path", type=click.Path(exists=True, dir_okay=False))
def profile_use(profile_path):
    """Point settings.json at a profile stored elsewhere (e.g. a config repo)."""
    from pathlib import Path

    from compcalc.sdk import save_settings

    path = Path(profile_path).expanduser().resolve()
    settings = load_settings()
    settings["profile"] = str(path)
    settings_file = save_settings(settings)

    click.echo(f"Active profile set to: {path}")
    click.echo(f"Saved to: {settings_file}")

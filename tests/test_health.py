"""Basic health check tests."""


def test_import_concierge():
    """Test that concierge package can be imported."""
    import concierge
    assert concierge.__version__ == "1.0.0"


def test_import_onboarding():
    """Test that the onboarding package exposes its public API."""
    from onboarding import OnboardingMachine, OnboardingState, QuestionStep

    machine = OnboardingMachine(state=OnboardingState(user_id="u1"))
    assert machine.step is QuestionStep.AGE


def test_cli_commands_registered():
    """Test that the CLI exposes its commands."""
    from typer.testing import CliRunner

    from concierge.main import app

    result = CliRunner().invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("chat", "rank", "health", "serve"):
        assert command in result.output


def test_cli_version():
    from typer.testing import CliRunner

    from concierge.main import app

    result = CliRunner().invoke(app, ["version"])
    assert result.exit_code == 0
    assert "1.0.0" in result.output

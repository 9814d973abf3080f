"""Turn the current directory into a git repository backed by GitHub."""

import sys
from pathlib import Path

import click

from autopilot import checks, git, github
from autopilot.errors import GitError, GitHubError, PreconditionError, RepositoryExistsError
from autopilot.output import detail, error, fail, hint, info, success, warn

DEFAULT_BRANCH = "main"

GITIGNORE = """\
node_modules/
dist/
build/
__pycache__/
*.pyc
.venv/
.env
.DS_Store
*.log
"""


def create_gitignore(directory: Path) -> bool:
    """Write a starter .gitignore unless one exists. Returns True if written."""
    path = directory / ".gitignore"
    if path.exists():
        return False
    path.write_text(GITIGNORE, encoding="utf-8")
    return True


def create_readme(directory: Path) -> bool:
    path = directory / "README.md"
    if path.exists():
        return False
    name = directory.resolve().name or "My Project"
    path.write_text(f"# {name}\n\nCreated with Autopilot CLI\n", encoding="utf-8")
    return True


def initialize_local(directory: Path, create_files: bool) -> None:
    git.init_repository(DEFAULT_BRANCH)
    success("Git repository initialized")
    success(f"Default branch set to {DEFAULT_BRANCH}")

    if create_files:
        for filename, create in ((".gitignore", create_gitignore), ("README.md", create_readme)):
            if create(directory):
                success(f"Created {filename}")
            else:
                detail(f"{filename} already exists, left untouched")

    git.stage_all()
    git.commit("Initial commit")
    success("Initial commit created")


def create_remote(
    token: str,
    name: str,
    description: str,
    private: bool,
    interactive: bool,
    ask_name: bool = False,
) -> github.CreatedRepository:
    """Create the GitHub repository, asking for another name on conflicts."""
    while True:
        if ask_name:
            name = click.prompt("Repository name", default=name).strip()
            if not name:
                error("Repository creation cancelled")
                sys.exit(1)

        info("Creating GitHub repository...")
        try:
            return github.create_repository(token, name, description=description, private=private)
        except RepositoryExistsError:
            error(f"Repository name '{name}' already exists")
            if not interactive:
                sys.exit(1)
            hint("Try a different name")
            ask_name = True
        except GitHubError as e:
            error(f"Failed to create repository: {e.message}")
            sys.exit(1)


@click.command("init")
@click.option("--yes", "-y", is_flag=True, help="Accept every default without prompting")
@click.option("--name", help="GitHub repository name (defaults to the directory name)")
@click.option("--description", help="GitHub repository description")
@click.option("--public", is_flag=True, help="Create a public repository instead of a private one")
def init(yes: bool, name: str | None, description: str | None, public: bool):
    """
    Initialize a git repository and connect it to a new GitHub repository.

    \b
    Examples:
        autopilot init
        autopilot init --yes --name my-project --public
    """
    info("Initializing repository...")
    try:
        token = checks.require_token()
    except PreconditionError as e:
        fail(e)

    try:
        account = github.validate_token(token)
    except GitHubError as e:
        error(f"Could not verify token: {e}")
        sys.exit(1)
    if not account.valid:
        fail(PreconditionError(
            "Your token is invalid or expired.",
            "Run `autopilot logout` then `autopilot connect`.",
        ))

    try:
        checks.require_git()
    except PreconditionError as e:
        fail(e)

    cwd = Path.cwd()
    if not git.is_git_repository():
        info("Not a git repository. Initializing...")
        create_files = yes or click.confirm("Create .gitignore and README.md?", default=True)
        try:
            initialize_local(cwd, create_files)
        except GitError as e:
            error(f"Failed to initialize git: {e}")
            sys.exit(1)
    else:
        success("Already a git repository")

    if git.has_remote():
        success("Remote origin already configured")
        return

    if not yes and not click.confirm("Create a new GitHub repository?", default=True):
        warn("You can manually add a remote with:")
        detail("git remote add origin <url>")
        detail(f"git push -u origin {DEFAULT_BRANCH}")
        return

    interactive = not yes
    if interactive and description is None:
        description = click.prompt("Repository description (optional)", default="", show_default=False)
    private = not public
    if interactive and not public:
        private = click.confirm("Make repository private?", default=True)

    repo = create_remote(
        token,
        name or cwd.name or "my-repo",
        description or "",
        private,
        interactive=interactive,
        ask_name=interactive and name is None,
    )
    success("Repository created on GitHub")

    branch = git.get_current_branch() or DEFAULT_BRANCH
    try:
        git.add_remote(repo.clone_url)
        success("Remote origin added")
        git.push_upstream(branch)
        success("Pushed to GitHub")
    except GitError as e:
        error(f"Failed to publish repository: {e}")
        sys.exit(1)

    info("All done!")
    detail(f"View your repository: {repo.html_url}")

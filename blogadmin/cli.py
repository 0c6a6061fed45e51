"""Blog Admin CLI tool (blogctl)."""

import mimetypes
import os
from pathlib import Path
from typing import Optional

import typer

from blogadmin.client.api_client import (
    AuthenticationRequired, BlogAdminClient, ClientError, ClientSession, ForbiddenAction,
)
from blogadmin.client.guard import GuardState, blog_actions, can_edit_role_of, can_render, navigate
from blogadmin.core.permissions import Permission

app = typer.Typer(name="blogctl", help="Blog Admin CLI")
db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")

API_URL = os.environ.get("BLOGCTL_API_URL", "http://localhost:8000")
SESSION_FILE = Path(os.environ.get("BLOGCTL_SESSION", Path.home() / ".blogctl" / "session.json"))


def _client() -> BlogAdminClient:
    return BlogAdminClient(API_URL, session=ClientSession.load(SESSION_FILE))


def _guard_route(client: BlogAdminClient, path: str) -> None:
    """Refuse to render a view the session may not see, like the web client does."""
    guard = navigate(path, client.session)
    if guard.state is GuardState.UNAUTHENTICATED:
        typer.echo(f"Not logged in. Run `blogctl login` ({guard.redirect_to}).")
        raise typer.Exit(code=1)
    if guard.state is GuardState.FORBIDDEN:
        typer.echo(f"Your role cannot open {path}.")
        raise typer.Exit(code=1)


def _call(fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except AuthenticationRequired:
        SESSION_FILE.unlink(missing_ok=True)
        typer.echo("Session expired. Run `blogctl login`.")
        raise typer.Exit(code=1)
    except ForbiddenAction as e:
        typer.echo(f"Forbidden: {e.detail}")
        raise typer.Exit(code=1)
    except ClientError as e:
        typer.echo(f"Error: {e.detail}")
        raise typer.Exit(code=1)


def _read_image(path: Optional[Path]):
    if path is None:
        return None
    content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return (path.name, path.read_bytes(), content_type)


@db_app.command("create")
def db_create():
    """Create the MySQL database if it doesn't exist."""
    import pymysql
    from sqlalchemy.engine import make_url
    from blogadmin.core.config import settings

    url = make_url(settings.DATABASE_URL)
    conn = pymysql.connect(
        host=url.host, port=url.port or 3306, user=url.username, password=url.password or "",
    )
    try:
        cursor = conn.cursor()
        cursor.execute(
            f"CREATE DATABASE IF NOT EXISTS `{url.database}` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
        typer.echo(f"Database '{url.database}' created (or already exists)")
    finally:
        conn.close()


@db_app.command("init")
def db_init():
    """Create all tables."""
    from blogadmin.db.base import Base
    from blogadmin.db.session import engine
    import blogadmin.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    typer.echo("Tables created")


@db_app.command("seed")
def db_seed():
    """Seed the super-admin and sample posts."""
    from blogadmin.db.session import SessionLocal
    from blogadmin.db.seeds.seed_super_admin import seed_super_admin
    from blogadmin.db.seeds.seed_sample_data import seed_sample_data

    db = SessionLocal()
    try:
        seed_super_admin(db)
        seed_sample_data(db)
    finally:
        db.close()
    typer.echo("All seeds applied")


@app.command("login")
def login(
    email: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True),
):
    """Log in and store the session token."""
    client = BlogAdminClient(API_URL)
    session = _call(client.login, email, password)
    session.save(SESSION_FILE)
    typer.echo(f"Logged in as {session.user.get('name')} ({session.role.value})")


@app.command("logout")
def logout():
    """Revoke the stored token and forget it."""
    client = _client()
    if client.session is not None:
        try:
            client.logout()
        except ClientError as e:
            typer.echo(f"Server did not revoke the token: {e.detail}")
    SESSION_FILE.unlink(missing_ok=True)
    typer.echo("Logged out")


@app.command("blogs")
def list_blogs():
    """List blog posts with the actions your role allows."""
    client = _client()
    _guard_route(client, "/")
    actions = blog_actions(client.session.role)
    allowed = [name for name, ok in actions.items() if ok and name != "add"]
    for blog in _call(client.list_blogs):
        author = (blog.get("author") or {}).get("name", "?")
        suffix = f"  [{', '.join(allowed)}]" if allowed else ""
        typer.echo(f"  [{blog['id']}] {blog['title']} by {author}{suffix}")


@app.command("delete-blog")
def delete_blog(blog_id: int = typer.Argument(..., help="Blog ID")):
    """Delete a blog post."""
    client = _client()
    _guard_route(client, "/")
    if not can_render(client.session.role, Permission.DELETE_BLOGS):
        typer.echo("Your role cannot delete posts.")
        raise typer.Exit(code=1)
    result = _call(client.delete_blog, blog_id)
    typer.echo(result["message"])


@app.command("create-blog")
def create_blog(
    title: str = typer.Option(..., help="Post title"),
    content: str = typer.Option(..., help="Post body"),
    image: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="Image file"),
):
    """Create a blog post."""
    client = _client()
    _guard_route(client, "/blog/new")
    blog = _call(client.create_blog, title, content, _read_image(image))
    typer.echo(f"Created blog {blog['id']}")


@app.command("edit-blog")
def edit_blog(
    blog_id: int = typer.Argument(..., help="Blog ID"),
    title: Optional[str] = typer.Option(None, help="New title"),
    content: Optional[str] = typer.Option(None, help="New body"),
    image: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="Replacement image"),
):
    """Edit a blog post; a new image replaces the old one."""
    client = _client()
    _guard_route(client, f"/blog/edit/{blog_id}")
    blog = _call(client.update_blog, blog_id, title, content, _read_image(image))
    typer.echo(f"Updated blog {blog['id']}")


@app.command("users")
def list_users():
    """List users and their roles."""
    client = _client()
    _guard_route(client, "/users")
    for user in _call(client.list_users):
        marker = "" if can_edit_role_of(client.session, user["id"]) else "  (you)"
        typer.echo(f"  [{user['id']}] {user['email']} {user['role']}{marker}")


@app.command("set-role")
def set_role(
    user_id: int = typer.Argument(..., help="User ID"),
    role: str = typer.Argument(..., help="lead, admin or super_admin"),
):
    """Change another user's role."""
    client = _client()
    _guard_route(client, "/users")
    result = _call(client.update_user_role, user_id, role)
    typer.echo(f"User {result['id']} is now {result['role']}")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload"),
):
    """Start the API server."""
    import uvicorn
    uvicorn.run("blogadmin.main:create_app", factory=True, host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()

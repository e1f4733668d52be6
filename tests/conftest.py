"""Shared fixtures: a small package tree with templates, partials and layouts."""

import io

import pytest

from cms_fluid.linter import ConsoleOutput
from cms_fluid.registry import PackageRegistry
from cms_fluid.resolver import PathResolver


@pytest.fixture
def extension_tree(tmp_path):
    """
    Two packages below ``<tmp>/ext``:

    - news: Templates/News/List.html, Partials/Item.html, Layouts/Default.html
    - blog_example: Templates/Post.html
    """
    ext = tmp_path / "ext"

    news = ext / "news" / "Resources" / "Private"
    (news / "Templates" / "News").mkdir(parents=True)
    (news / "Templates" / "News" / "List.html").write_text(
        "{% for item in items %}{{ item.title }}{% endfor %}"
    )
    (news / "Partials").mkdir()
    (news / "Partials" / "Item.html").write_text("<li>{{ item.title }}</li>")
    (news / "Layouts").mkdir()
    (news / "Layouts" / "Default.html").write_text("<main>{% block content %}{% endblock %}</main>")

    blog = ext / "blog_example" / "Resources" / "Private" / "Templates"
    blog.mkdir(parents=True)
    (blog / "Post.html").write_text("{% if post %}{{ post.title }}{% endif %}")

    return ext


@pytest.fixture
def registry(extension_tree):
    return PackageRegistry.from_directory(extension_tree)


@pytest.fixture
def resolver(registry):
    return PathResolver(package_registry=registry)


@pytest.fixture
def output():
    """ConsoleOutput writing into a StringIO, exposed as ``output.stream``."""
    return ConsoleOutput(io.StringIO())

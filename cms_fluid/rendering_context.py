"""
CMS-aware rendering context.

Ties together the template paths of a package, the Jinja2 environment built
from them, the template variables and the controller/action being rendered.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jinja2 import Environment, TemplateSyntaxError
from jinja2 import nodes

from config.enhanced_logging import get_logger

from .jinja_environment import JinjaEnvironmentManager
from .template_paths import TemplatePaths
from .utils import InvalidControllerNameError, TemplateParsingError, lcfirst

logger = get_logger(__name__)

DEFAULT_CONTROLLER = "Default"
DEFAULT_ACTION = "Default"


@dataclass
class Request:
    """Controller request data a template rendering depends on."""

    controller_name: str = DEFAULT_CONTROLLER
    controller_action_name: str = lcfirst(DEFAULT_ACTION)
    controller_subpackage_key: Optional[str] = None
    controller_extension_name: Optional[str] = None
    arguments: Dict[str, Any] = field(default_factory=dict)

    def set_controller_name(self, controller_name: str) -> None:
        if not controller_name:
            raise InvalidControllerNameError("The controller name must not be empty")
        self.controller_name = controller_name

    def set_controller_action_name(self, action_name: str) -> None:
        self.controller_action_name = action_name


@dataclass
class ControllerContext:
    request: Request = field(default_factory=Request)


class TemplateParser:
    """Syntax-checks template sources with the engine of a rendering context."""

    def __init__(self, environment: Environment):
        self.environment = environment

    def parse_source(self, source: str, name: Optional[str] = None, filename: Optional[str] = None) -> nodes.Template:
        """
        Parse and compile ``source`` without rendering it.

        Compiling catches errors the parser alone lets through, such as
        unknown filters or tests.

        Raises:
            TemplateParsingError: If the source is not a valid template
        """
        try:
            tree = self.environment.parse(source, name=name, filename=filename)
            self.environment.compile(tree, name=name, filename=filename)
        except TemplateSyntaxError as e:
            raise TemplateParsingError(
                e.message or str(e),
                filename=filename or e.filename or name,
                lineno=e.lineno,
                original_error=e,
            ) from e
        return tree

    def parse_file(self, path_and_filename: str) -> nodes.Template:
        """
        Parse the template stored in ``path_and_filename``.

        Raises:
            TemplateParsingError: If the file cannot be read or does not parse
        """
        try:
            with open(path_and_filename, "r", encoding="utf-8") as f:
                source = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise TemplateParsingError(
                f"Cannot read template file: {e}",
                filename=path_and_filename,
                original_error=e,
            ) from e
        return self.parse_source(source, name=path_and_filename, filename=path_and_filename)


class RenderingContext:
    """
    Rendering context aware of CMS packages and controller requests.

    Without a controller context, controller name and action both report
    ``Default``.
    """

    def __init__(
        self,
        template_paths: Optional[TemplatePaths] = None,
        variables: Optional[Dict[str, Any]] = None,
        jinja_extensions: Optional[List[str]] = None,
        jinja2_options: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            template_paths: Template paths; a fresh TemplatePaths when omitted
            variables: Initial template variables
            jinja_extensions: Jinja2 extensions; the configured defaults when omitted
            jinja2_options: Extra Jinja2 Environment options
        """
        if jinja_extensions is None:
            from config.settings import settings

            jinja_extensions = list(settings.jinja_extensions)

        self.template_paths = template_paths or TemplatePaths()
        self.variable_provider: Dict[str, Any] = dict(variables or {})
        self.jinja_extensions = jinja_extensions
        self.jinja2_options = jinja2_options or {}
        self.controller_context: Optional[ControllerContext] = None
        self._environment_manager: Optional[JinjaEnvironmentManager] = None
        self._environment_paths = None

    # ------------------------------------------------------------------
    # Template paths and engine
    # ------------------------------------------------------------------

    def set_template_paths(self, template_paths: TemplatePaths) -> None:
        self.template_paths = template_paths
        self._environment_manager = None

    def get_template_paths(self) -> TemplatePaths:
        return self.template_paths

    def get_environment_manager(self) -> JinjaEnvironmentManager:
        """Environment manager for the current template paths, rebuilt when they change."""
        path_set = self.template_paths.to_path_set()
        if self._environment_manager is None or self._environment_paths != path_set:
            self._environment_manager = JinjaEnvironmentManager(
                path_set=path_set,
                jinja2_options=self.jinja2_options,
                extensions=self.jinja_extensions,
                normalizer=self.template_paths.normalizer,
            )
            self._environment_paths = path_set
        return self._environment_manager

    def get_environment(self) -> Environment:
        return self.get_environment_manager().get_environment()

    def get_template_parser(self) -> TemplateParser:
        return TemplateParser(self.get_environment())

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def get_variable_provider(self) -> Dict[str, Any]:
        return self.variable_provider

    def assign(self, name: str, value: Any) -> None:
        self.variable_provider[name] = value

    def assign_multiple(self, values: Dict[str, Any]) -> None:
        self.variable_provider.update(values)

    # ------------------------------------------------------------------
    # Controller context
    # ------------------------------------------------------------------

    def get_controller_context(self) -> Optional[ControllerContext]:
        return self.controller_context

    def set_controller_context(self, controller_context: ControllerContext) -> None:
        """
        Adopt the controller and action of a request.

        A sub-package key turns the controller name into a namespaced name,
        ``<SubPackage>\\<Controller>``, unless it is namespaced already.
        """
        request = controller_context.request
        self.controller_context = controller_context
        self.set_controller_action(request.controller_action_name)

        controller_name = request.controller_name
        if request.controller_subpackage_key and "\\" not in controller_name:
            self.set_controller_name(request.controller_subpackage_key + "\\" + controller_name)
        else:
            self.set_controller_name(controller_name)

    def _get_request(self) -> Request:
        if self.controller_context is None:
            self.controller_context = ControllerContext()
        return self.controller_context.request

    def set_controller_action(self, action: str) -> None:
        """Set the action name; a format suffix (``list.html``) is cut off."""
        action = action.split(".", 1)[0]
        self._get_request().set_controller_action_name(lcfirst(action))

    def set_controller_name(self, controller_name: str) -> None:
        """
        Raises:
            InvalidControllerNameError: If the name is empty
        """
        self._get_request().set_controller_name(controller_name)

    def get_controller_name(self) -> str:
        if self.controller_context is None:
            return DEFAULT_CONTROLLER
        return self.controller_context.request.controller_name

    def get_controller_action(self) -> str:
        if self.controller_context is None:
            return DEFAULT_ACTION
        return self.controller_context.request.controller_action_name

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, template_name: Optional[str] = None, variables: Optional[Dict[str, Any]] = None) -> str:
        """
        Render a template with the context's variables.

        Args:
            template_name: Loader name (``partials/Item.html``, ``News/List.html``);
                when omitted the template of the current controller action is used
            variables: Variables merged over the variable provider for this call
        """
        context = {**self.variable_provider, **(variables or {})}
        environment = self.get_environment()
        if template_name is not None:
            return environment.get_template(template_name).render(context)

        source = self.template_paths.get_template_source(self.get_controller_name(), self.get_controller_action())
        logger.debug(f"Rendering {self.get_controller_name()}->{self.get_controller_action()}")
        return environment.from_string(source).render(context)

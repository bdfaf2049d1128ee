"""Parameter resolution engine.

Resolves every declared parameter of one module, in declaration order,
against a parameter map shared by all modules of the project. A field
already present in the shared map is never resolved again, so a
parameter declared by several modules is asked once.

Execute commands run with the module's required credentials and the
answers so far as their environment. Credentials are kept out of the
shared map so they never flow back into the project configuration.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

import structlog

from stackforge.logging import bind_module_context, clear_module_context
from stackforge.modules.descriptor import ModuleConfig
from stackforge.prompts.conditions import condition_for
from stackforge.prompts.handler import CommandRunner, PromptHandler, execute_command
from stackforge.prompts.surface import PromptSurface
from stackforge.prompts.validators import ValidatorSet, default_validators

if TYPE_CHECKING:
    from stackforge.credentials import ProjectCredential

logger = structlog.get_logger(__name__)


def to_environment(
    params: Mapping[str, str], env_var_names: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Export parameters as environment variables.

    Fields are renamed through env_var_names where declared; empty values
    are left out.
    """
    names = env_var_names or {}
    return {names.get(key, key): value for key, value in params.items() if value}


class ParameterResolver:
    """Resolves module parameters through prompts, fixed values and commands.

    Attributes:
        surface: Prompt surface used for interactive answers
        validators: Field name -> validator for module parameters
        runner: Shell runner for ``execute`` parameters
    """

    def __init__(
        self,
        surface: PromptSurface,
        validators: ValidatorSet | None = None,
        runner: CommandRunner = execute_command,
    ) -> None:
        self.surface = surface
        self.validators = validators if validators is not None else default_validators()
        self.runner = runner

    def handler_for(self, module: ModuleConfig, index: int) -> PromptHandler:
        parameter = module.parameters[index]
        return PromptHandler(
            parameter=parameter,
            condition=condition_for(parameter.conditions),
            validate=self.validators.for_field(parameter.field),
        )

    def resolve_module_parameters(
        self,
        module: ModuleConfig,
        parameters: dict[str, str],
        credentials: ProjectCredential,
    ) -> dict[str, str]:
        """Resolve one module's parameters into the shared parameter map.

        Args:
            module: Module whose parameters are resolved
            parameters: Shared map of already-resolved parameters; updated
                in place and returned
            credentials: Credentials gathered for the project

        Returns:
            The shared parameter map

        Raises:
            CredentialError: If a required vendor was not resolved
            ExecutionError: If an execute command fails
            ValidationError: If an executed or fixed value is rejected
            PromptAbortedError: If the prompt surface fails
        """
        credential_env = credentials.selected_vendors_credentials_as_env(
            module.required_credentials
        )
        env_var_names = module.env_var_names()
        resolved: dict[str, str] = {}

        bind_module_context(module.name)
        try:
            for index, parameter in enumerate(module.parameters):
                if parameter.field in parameters:
                    logger.debug("parameter_already_resolved", field=parameter.field)
                    continue

                context = {**credential_env, **parameters, **resolved}
                env = {
                    **credential_env,
                    **to_environment({**parameters, **resolved}, env_var_names),
                }
                handler = self.handler_for(module, index)
                resolved[parameter.field] = handler.get_param(
                    context, self.surface, env=env, runner=self.runner
                )
        finally:
            clear_module_context()

        # Commit only after every parameter of the module resolved
        parameters.update(resolved)
        logger.info("module_parameters_resolved", module=module.name, count=len(resolved))
        return parameters

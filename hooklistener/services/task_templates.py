from typing import Dict, List

from hooklistener.schemas.task import TaskTemplateSet

WILDCARD = "*"


def resolve_commands(
    templates: TaskTemplateSet, placeholders: Dict[str, str], repository_name: str
) -> List[str]:
    """Expand the task templates that apply to a repository.

    The wildcard template comes first, then the one named after the
    repository. Each placeholder token is replaced everywhere it occurs;
    unknown tokens are left alone.
    """
    selected = []
    if WILDCARD in templates:
        selected.append(templates[WILDCARD])
    if repository_name in templates:
        selected.append(templates[repository_name])

    commands = []
    for template in selected:
        command = template if isinstance(template, str) else "\n".join(template)
        for token, value in placeholders.items():
            command = command.replace(token, value)
        commands.append(command + "\n")
    return commands

from __future__ import annotations
from .classes import CompilationArtifact, CompilationFailure
from .compiler import CompilationEnvironment
from .errors import tert


def template_to_environment(template: dict) -> dict:
    """Extract the compilation environment properties from an
        authentication template: scripts, variables, entity_ownership,
        unlocking_scripts, locking_script_types and
        unlocking_script_time_lock_types. Variables and their ownership
        are merged across entities; on an id collision the last entity
        wins. The template is assumed to be valid.
    """
    tert(isinstance(template, dict), 'template must be a dict')
    template_scripts = template.get('scripts') or {}
    scripts = {
        script_id: definition['script']
        for script_id, definition in template_scripts.items()
    }

    variables = {}
    entity_ownership = {}
    for entity_id, entity in (template.get('entities') or {}).items():
        entity_variables = entity.get('variables') or {}
        variables.update(entity_variables)
        for variable_id in entity_variables:
            entity_ownership[variable_id] = entity_id

    def collect(key: str) -> dict[str, str]:
        return {
            script_id: definition[key]
            for script_id, definition in template_scripts.items()
            if definition.get(key) is not None
        }

    return {
        'entity_ownership': entity_ownership,
        'locking_script_types': collect('lockingType'),
        'scripts': scripts,
        'unlocking_script_time_lock_types': collect('timeLockType'),
        'unlocking_scripts': collect('unlocks'),
        'variables': variables,
    }

def format_errors(result: CompilationFailure|CompilationArtifact,
                  environment: CompilationEnvironment) -> list[str]:
    """Render each error of a failed compilation as
        `script_id:line:column: message`, followed by the indented
        source excerpt when the range and source are known.
    """
    lines = []

    for error in result.errors:
        location = error.script_id or '<unknown script>'
        if error.range is not None:
            location += f':{error.range}'
        text = f'{location}: {error.message}'

        source = environment.scripts.get(error.script_id)
        if error.range is not None and source is not None:
            excerpt = error.range.excerpt(source)
            if excerpt:
                text += '\n    ' + excerpt.replace('\n', '\n    ')

        lines.append(text)

    return lines

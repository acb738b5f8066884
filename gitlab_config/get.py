import logging

from gitlab_config.configuration import Configuration
from gitlab_config.sections import SECTIONS
from gitlab_config.sections.base import Context
from gitlab_config.utils.ruamel import (
    STDIO,
    write_document,
)


def run(ctx: Context, output: str) -> Configuration:
    """
    Read the configuration of the project from GitLab and write it to output
    as an annotated YAML document.
    """
    values = {}
    comments = {}
    sensitive = []
    for section in SECTIONS:
        logging.info(f"Getting {section.title}...")
        fetched = section.fetch(ctx)
        values[section.key] = fetched.value
        if fetched.comment:
            comments[section.key] = fetched.comment
        if fetched.sensitive:
            sensitive.append(section.key)

    configuration = Configuration.model_validate(values)
    write_document(
        configuration.to_document(comments), output, ctx.settings.comment_width
    )

    if sensitive:
        target = "<file>" if output == STDIO else output
        logging.warning(
            f"Configuration contains sensitive values in {', '.join(sensitive)}. "
            f"Encrypt them before committing: gitlab-config sops --encrypt "
            f"--encrypted-suffix {ctx.enc_suffix} --in-place {target}"
        )
    return configuration

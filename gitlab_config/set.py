import logging

from gitlab_config.configuration import Configuration
from gitlab_config.sections import SECTIONS
from gitlab_config.sections.base import Context
from gitlab_config.utils import sops
from gitlab_config.utils.ruamel import (
    load,
    read_document,
)


def read_configuration(source: str, enc_suffix: str) -> Configuration:
    """
    Read the configuration from source, decrypting it when it is encrypted
    with sops. The encryption suffix is removed from field names.
    """
    data = read_document(source)
    parsed = load(data)
    decrypted = sops.decrypt(data, parsed)
    if decrypted is not None:
        parsed = load(decrypted)
    configuration = Configuration.parse(parsed)
    configuration.remove_field_suffix(enc_suffix)
    return configuration


def run(ctx: Context, source: str) -> None:
    """
    Update the project in GitLab to match the configuration read from
    source. Sections missing from the configuration are left untouched.
    """
    configuration = read_configuration(source, ctx.enc_suffix)
    for section in SECTIONS:
        value = getattr(configuration, section.key)
        if value is None:
            continue
        logging.info(f"Updating {section.title}...")
        section.apply(ctx, value)

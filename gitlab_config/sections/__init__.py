from gitlab_config.sections.approval_rules import ApprovalRulesSection
from gitlab_config.sections.approvals import ApprovalsSection
from gitlab_config.sections.avatar import AvatarSection
from gitlab_config.sections.base import Section
from gitlab_config.sections.forked_from_project import ForkedFromProjectSection
from gitlab_config.sections.labels import LabelsSection
from gitlab_config.sections.pipeline_schedules import PipelineSchedulesSection
from gitlab_config.sections.project import ProjectSection
from gitlab_config.sections.protected_branches import ProtectedBranchesSection
from gitlab_config.sections.protected_tags import ProtectedTagsSection
from gitlab_config.sections.push_rules import PushRulesSection
from gitlab_config.sections.shared_with_groups import SharedWithGroupsSection
from gitlab_config.sections.variables import VariablesSection

# in the order of SECTION_KEYS
SECTIONS: list[Section] = [
    ProjectSection(),
    AvatarSection(),
    SharedWithGroupsSection(),
    ForkedFromProjectSection(),
    LabelsSection(),
    ProtectedBranchesSection(),
    ProtectedTagsSection(),
    VariablesSection(),
    PipelineSchedulesSection(),
    ApprovalsSection(),
    ApprovalRulesSection(),
    PushRulesSection(),
]

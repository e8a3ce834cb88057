import pytest

from onboarding.models import Stage
from onboarding.services import checklist, contracts, onboarding, progress

pytestmark = pytest.mark.django_db

OPERATOR = {'name': 'Chidi Nwosu', 'email': 'partnerships@grandpro-hmso.ng'}


def test_progress_moves_forward_through_onboarding(make_application, verify_required, admin_user):
    app = make_application()
    seen = []

    def snapshot():
        data = progress.get_progress(app)
        seen.append(data)
        return data

    data = snapshot()
    assert data['completedSteps'] == 1
    assert data['percentage'] == 16.67
    assert data['stage'] == Stage.APPLICATION
    assert data['checklist']['total'] == 12
    assert len(data['checklist']['nextItems']) == 3

    verify_required(app)
    data = snapshot()
    assert data['stage'] == Stage.DOCUMENT_SUBMISSION
    assert data['completedSteps'] == 2

    onboarding.auto_evaluate(app, evaluator=admin_user)
    checklist.complete_stage(app, Stage.EVALUATION, actor=admin_user)
    app.refresh_from_db()
    data = snapshot()
    assert data['stage'] == Stage.EVALUATION
    assert data['completedSteps'] == 3

    contract = contracts.generate_contract(app, {}, actor=admin_user)
    assert snapshot()['stage'] == Stage.CONTRACT_NEGOTIATION

    contracts.send_contract(contract, actor=admin_user)
    data = snapshot()
    assert data['stage'] == Stage.CONTRACT_SIGNING
    assert data['completedSteps'] == 4

    contracts.sign_contract(contract.id, signatory={'name': app.contact_name, 'email': app.contact_email})
    assert snapshot()['completedSteps'] == 5

    contracts.sign_contract(contract.id, signatory=OPERATOR, actor=admin_user)
    data = snapshot()
    assert data['completedSteps'] == 6
    assert data['percentage'] == 100.0
    assert data['stage'] == Stage.SYSTEM_SETUP

    for stage, following in ((Stage.SYSTEM_SETUP, Stage.TRAINING),
                             (Stage.TRAINING, Stage.GO_LIVE),
                             (Stage.GO_LIVE, Stage.COMPLETED)):
        checklist.complete_stage(app, stage, actor=admin_user)
        assert snapshot()['stage'] == following

    assert seen[-1]['stageCheckpoint'] == 100
    assert seen[-1]['checklist']['nextItems'] == []
    assert checklist.fully_onboarded(app)

    percentages = [d['percentage'] for d in seen]
    checkpoints = [d['stageCheckpoint'] for d in seen]
    assert percentages == sorted(percentages)
    assert checkpoints == sorted(checkpoints)


def test_rejected_application_stops_progressing(make_application, admin_user):
    app = make_application()
    app = onboarding.update_status(app, 'UNDER_REVIEW', actor=admin_user)
    assert progress.current_stage(app) == Stage.EVALUATION
    app = onboarding.update_status(app, 'REJECTED', actor=admin_user, reason='Out of coverage area')
    data = progress.get_progress(app)
    assert data['status'] == 'REJECTED'
    assert data['completedSteps'] == 1

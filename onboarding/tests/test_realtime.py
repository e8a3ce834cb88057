import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from rest_framework_simplejwt.tokens import AccessToken

from hmso.asgi import application
from onboarding.models import User
from onboarding.services.broadcast import GROUP_ALL, application_group

# Consumers resolve users through database_sync_to_async, which needs committed rows.
pytestmark = pytest.mark.django_db(transaction=True)


def token_for(user):
    return str(AccessToken.for_user(user))


def test_staff_follow_one_application(make_user):
    token = token_for(make_user(User.ROLE_ADMIN))

    async def scenario():
        communicator = WebsocketCommunicator(application, f'/ws/onboarding/42/?token={token}')
        connected, _ = await communicator.connect()
        assert connected
        welcome = await communicator.receive_json_from()
        await get_channel_layer().group_send(application_group(42), {
            'type': 'onboarding.event',
            'event': 'application.status',
            'applicationId': 42,
            'status': 'APPROVED',
        })
        message = await communicator.receive_json_from()
        await communicator.disconnect()
        return welcome, message

    welcome, message = async_to_sync(scenario)()
    assert welcome == {'type': 'welcome', 'group': 'onboarding.42'}
    assert message == {'type': 'event', 'event': 'application.status', 'applicationId': 42, 'status': 'APPROVED'}


def test_dashboard_receives_refresh(make_user):
    token = token_for(make_user(User.ROLE_HOSPITAL_ADMIN))

    async def scenario():
        communicator = WebsocketCommunicator(application, f'/ws/onboarding/?token={token}')
        connected, _ = await communicator.connect()
        assert connected
        await communicator.receive_json_from()
        await get_channel_layer().group_send(GROUP_ALL, {
            'type': 'broadcast.refresh', 'version': 1, 'ts': '2026-10-19T09:00:00+01:00', 'keys': ['onboarding:metrics'],
        })
        message = await communicator.receive_json_from()
        await communicator.disconnect()
        return message

    message = async_to_sync(scenario)()
    assert message['type'] == 'broadcast.refresh'
    assert message['keys'] == ['onboarding:metrics']


@pytest.mark.parametrize('role', [User.ROLE_NURSE, None])
def test_connection_refused_without_read_permission(make_user, role):
    query = f'?token={token_for(make_user(role))}' if role else ''

    async def scenario():
        communicator = WebsocketCommunicator(application, f'/ws/onboarding/{query}')
        result = await communicator.connect()
        await communicator.disconnect()
        return result

    connected, code = async_to_sync(scenario)()
    assert not connected
    assert code == 4403


def test_invalid_token_is_refused():
    async def scenario():
        communicator = WebsocketCommunicator(application, '/ws/onboarding/?token=not-a-jwt')
        result = await communicator.connect()
        await communicator.disconnect()
        return result

    connected, code = async_to_sync(scenario)()
    assert not connected and code == 4403

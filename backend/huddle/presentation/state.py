"""
Application state for one signed-in client.

Owns the identity session and every view, wires them to the persistence
gateway and change bus it is given, and swaps the channel, pinned and
thread views as the selection changes.
"""

import logging

from huddle.gateway.changefeed import ChangeBus
from huddle.gateway.query import PersistenceGateway
from huddle.presentation.api_client import ApiClient
from huddle.presentation.channel_view import ChannelView, PinnedMessages
from huddle.presentation.composer import Composer
from huddle.presentation.invite_manager import InviteManager, InviteOnboarding
from huddle.presentation.members import MemberDirectory, MembersPanel
from huddle.presentation.org_brain import OrgBrainModal, ReplySuggestions
from huddle.presentation.profile import AuthForm, ProfileModal
from huddle.presentation.sidebar import Sidebar
from huddle.presentation.thread_view import ThreadView
from huddle.services.identity import IdentitySession

logger = logging.getLogger(__name__)


class AppState:
    def __init__(self, gateway: PersistenceGateway, changes: ChangeBus, api: ApiClient) -> None:
        self.gateway = gateway
        self.changes = changes
        self.api = api

        self.session = IdentitySession(gateway)
        self.directory = MemberDirectory(gateway, changes)
        self.sidebar = Sidebar(gateway, changes, self.current_user_id)
        self.members_panel = MembersPanel(self.directory)
        self.auth_form = AuthForm(self.session)
        self.profile = ProfileModal(self.session)
        self.invite_manager = InviteManager(api, self.current_user_id)
        self.org_brain = OrgBrainModal(api)

        self.channel_view: ChannelView | None = None
        self.pinned: PinnedMessages | None = None
        self.composer: Composer | None = None
        self.thread_view: ThreadView | None = None
        self.thread_composer: Composer | None = None

        self.session.subscribe(self._on_session)
        self.sidebar.on_render(self._on_sidebar)

    def current_user_id(self) -> str | None:
        return self.session.identity_id

    def _usernames(self) -> list[str]:
        return self.directory.usernames

    def start(self) -> None:
        """Load workspace data once a user is signed in."""
        if not self.session.is_authenticated:
            return
        self.directory.load()
        self.sidebar.load()

    def onboarding(self, code: str | None) -> InviteOnboarding:
        return InviteOnboarding(self.gateway, self.session, code)

    def _on_session(self, session: IdentitySession) -> None:
        if session.is_authenticated:
            if self.channel_view is None:
                self.start()
        else:
            self._close_channel()

    def _on_sidebar(self, sidebar: Sidebar) -> None:
        selected = sidebar.selected_id
        if selected and (self.channel_view is None or self.channel_view.channel_id != selected):
            self.open_channel(selected)

    # ── Channel ──────────────────────────────────────────────────────────────

    def open_channel(self, channel_id: str) -> ChannelView:
        self._close_channel()
        logger.debug("Opening channel %s", channel_id)
        view = ChannelView(self.gateway, self.changes, channel_id, self.current_user_id, self._usernames)
        self.channel_view = view
        self.pinned = PinnedMessages(self.gateway, self.changes, channel_id, self.current_user_id, self._usernames)
        self.composer = Composer(view.send, self._usernames, self.api.analyze_tone)
        view.reload()
        self.pinned.reload()
        return view

    def _close_channel(self) -> None:
        self.close_thread()
        for view in (self.channel_view, self.pinned, self.composer):
            if view is not None:
                view.close()
        if self.composer and self.composer.tone:
            self.composer.tone.cancel()
        self.channel_view = self.pinned = self.composer = None

    # ── Thread ───────────────────────────────────────────────────────────────

    def open_thread(self, message_id: str) -> ThreadView:
        self.close_thread()
        view = ThreadView(self.gateway, self.changes, message_id, self.current_user_id, self._usernames)
        self.thread_view = view
        self.thread_composer = Composer(view.send_reply, self._usernames, placeholder="Reply")
        if self.channel_view is not None:
            self.channel_view.open_thread(message_id)
        view.reload()
        return view

    def close_thread(self) -> None:
        for view in (self.thread_view, self.thread_composer):
            if view is not None:
                view.close()
        self.thread_view = self.thread_composer = None
        if self.channel_view is not None and self.channel_view.active_thread_id:
            self.channel_view.close_thread()

    def reply_suggestions(self, message_id: str) -> ReplySuggestions | None:
        """Suggestions for a thread message, feeding the thread composer."""
        if self.thread_view is None:
            return None
        item = self.thread_view.find(message_id)
        if item is None and self.thread_view.parent and self.thread_view.parent.id == message_id:
            item = self.thread_view.parent
        if item is None:
            return None
        composer = self.thread_composer
        return ReplySuggestions(
            self.api,
            item.message.content,
            lambda: self.thread_view.thread_context(exclude_id=message_id) if self.thread_view else [],
            on_select=composer.apply_suggestion if composer else None,
        )

    def close(self) -> None:
        self._close_channel()
        for view in (self.sidebar, self.directory, self.members_panel, self.profile):
            view.close()

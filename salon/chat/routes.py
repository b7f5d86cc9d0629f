from flask import Blueprint, render_template, redirect, url_for, flash, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from salon import db
from salon.models.appointment import Appointment, ChatMessage, SENDER_ADMIN, SENDER_CLIENT
from salon.chat.forms import MessageForm
from salon.utils.audit import report_permission_error
from salon.utils.roles import current_session_role, SessionRole

chat_bp = Blueprint('chat', __name__, url_prefix='/appointments')


def chat_role(appointment):
    """The side the current user speaks for in this conversation, or None"""
    if current_session_role() is SessionRole.ADMIN:
        return SENDER_ADMIN
    if appointment.client_id == current_user.id:
        return SENDER_CLIENT
    return None


def mark_read(appointment, reader_role):
    updated = ChatMessage.query.filter(
        ChatMessage.appointment_id == appointment.id,
        ChatMessage.sender_role != reader_role,
        ChatMessage.is_read.is_(False)
    ).update({ChatMessage.is_read: True}, synchronize_session=False)
    if updated:
        db.session.commit()


@chat_bp.route('/<int:appointment_id>/chat', methods=['GET', 'POST'])
@login_required
def conversation(appointment_id):
    """Message thread between the client and the salon about one appointment"""
    appointment = Appointment.query.get_or_404(appointment_id)
    role = chat_role(appointment)
    if role is None:
        report_permission_error(f'appointments/{appointment.id}/messages', 'list')
        flash('Access denied. You can only view your own conversations.', 'danger')
        return redirect(url_for('profile.index'))

    form = MessageForm()

    if form.validate_on_submit():
        message = ChatMessage(
            appointment_id=appointment.id,
            sender_id=current_user.id,
            sender_name=current_user.name,
            sender_role=role,
            text=form.text.data.strip()
        )
        db.session.add(message)
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception(f"Could not store message on appointment {appointment.id}: {e}")
            flash('Your message could not be sent. Please try again.', 'danger')
        return redirect(url_for('chat.conversation', appointment_id=appointment.id))

    mark_read(appointment, role)

    return render_template(
        'chat/chat.html',
        appointment=appointment,
        messages=appointment.messages.all(),
        role=role,
        form=form
    )

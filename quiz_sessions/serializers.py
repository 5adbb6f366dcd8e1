from quiz.serializers import serialize_answer, serialize_question, serialize_result


def serialize_user(user):
    if user is None:
        return None
    return {
        'id': user.pk,
        'email': user.email,
        'name': user.name,
        'profile_picture_url': user.profile_picture_url,
    }


def serialize_session(session):
    return {
        'id': session.pk,
        'quiz_id': session.quiz_id,
        'user_id': session.user_id,
        'anonymous_token': session.anonymous_token,
        'status': session.status,
        'entered_at': session.entered_at,
        'started_at': session.started_at,
        'completed_at': session.completed_at,
        'is_lead': session.is_lead,
        'lead_score': session.lead_score,
        'created_at': session.created_at,
    }


def serialize_response(response):
    return {
        'id': response.pk,
        'session_id': response.session_id,
        'question_id': response.question_id,
        'answer_id': response.answer_id,
        'answered_at': response.answered_at,
    }


def serialize_session_result(session_result):
    return {
        'id': session_result.pk,
        'session_id': session_result.session_id,
        'result_id': session_result.result_id,
        'score': session_result.score,
        'is_primary': session_result.is_primary,
        'created_at': session_result.created_at,
        'quiz_result': serialize_result(session_result.result),
    }


def serialize_session_detail(session):
    data = serialize_session(session)
    data['user'] = serialize_user(session.user)
    data['responses'] = []
    for response in session.responses.all():
        row = serialize_response(response)
        row['question'] = serialize_question(response.question)
        row['answer'] = serialize_answer(response.answer)
        data['responses'].append(row)
    data['results'] = [serialize_session_result(sr) for sr in session.results.all()]
    return data


def serialize_completion(completion):
    outcome = completion.outcome
    primary = outcome.primary_result
    return {
        'session': serialize_session(completion.session),
        'totalScore': outcome.score,
        'votes': {str(result_id): count for result_id, count in outcome.votes.items()},
        'primaryResult': serialize_result(primary) if primary else None,
        'isLead': outcome.is_lead,
        'emailSent': completion.email_sent,
        'emailError': completion.email_error,
    }


def serialize_lead_row(session):
    """Admin leads list: completed session with user, quiz and primary result."""
    primary = next((sr for sr in session.results.all() if sr.is_primary), None)
    return {
        'session_id': session.pk,
        'quiz': {'id': session.quiz_id, 'title': session.quiz.title, 'slug': session.quiz.slug},
        'user': serialize_user(session.user),
        'result': primary.result.title if primary else None,
        'score': round(session.lead_score, 1) if session.lead_score is not None else None,
        'is_lead': session.is_lead,
        'completed_at': session.completed_at,
    }

"""
Plain dict shapes for the quiz authoring API. One function per response
shape so callers never have to guess whether a relation is a list or a row.
"""
import random


def serialize_quiz(quiz):
    return {
        'id': quiz.pk,
        'title': quiz.title,
        'description': quiz.description,
        'image_url': quiz.image_url,
        'slug': quiz.slug,
        'is_published': quiz.is_published,
        'settings': quiz.settings,
        'scoring_policy': quiz.scoring_policy,
        'created_at': quiz.created_at,
        'updated_at': quiz.updated_at,
    }


def serialize_quiz_summary(quiz):
    """List row: quiz plus result and question counts (annotated by the queryset)."""
    data = serialize_quiz(quiz)
    data['result_count'] = quiz.result_count
    data['question_count'] = quiz.question_count
    return data


def serialize_question(question):
    return {
        'id': question.pk,
        'quiz_id': question.quiz_id,
        'question_text': question.question_text,
        'image_url': question.image_url,
        'display_order': question.display_order,
        'created_at': question.created_at,
    }


def serialize_answer(answer):
    return {
        'id': answer.pk,
        'question_id': answer.question_id,
        'answer_text': answer.answer_text,
        'display_order': answer.display_order,
        'created_at': answer.created_at,
    }


def serialize_result(result):
    return {
        'id': result.pk,
        'quiz_id': result.quiz_id,
        'title': result.title,
        'description': result.description,
        'image_url': result.image_url,
        'email_content': result.email_content,
        'is_lead': result.is_lead,
        'min_score': result.min_score,
        'display_order': result.display_order,
        'created_at': result.created_at,
    }


def serialize_weight(weight):
    return {
        'id': weight.pk,
        'answer_id': weight.answer_id,
        'result_id': weight.result_id,
        'weight': weight.weight,
        'created_at': weight.created_at,
    }


def serialize_quiz_detail(quiz):
    """Admin editor shape: everything including answer to result wiring."""
    data = serialize_quiz(quiz)
    data['results'] = [serialize_result(r) for r in quiz.results.all()]
    data['questions'] = []
    for question in quiz.questions.all():
        q = serialize_question(question)
        q['answers'] = []
        for answer in question.answers.all():
            a = serialize_answer(answer)
            a['result_weights'] = [serialize_weight(w) for w in answer.result_weights.all()]
            q['answers'].append(a)
        data['questions'].append(q)
    return data


def serialize_public_quiz(quiz):
    """Quiz taker shape: no weights, no thresholds, no email bodies."""
    randomize = bool((quiz.settings or {}).get('randomizeAnswers'))

    questions = []
    for question in quiz.questions.all():
        answers = [
            {'id': a.pk, 'answer_text': a.answer_text, 'display_order': a.display_order}
            for a in question.answers.all()
        ]
        if randomize:
            random.shuffle(answers)
        questions.append({
            'id': question.pk,
            'question_text': question.question_text,
            'image_url': question.image_url,
            'display_order': question.display_order,
            'answers': answers,
        })

    return {
        'id': quiz.pk,
        'title': quiz.title,
        'description': quiz.description,
        'image_url': quiz.image_url,
        'slug': quiz.slug,
        'settings': quiz.settings,
        'questions': questions,
        'results': [
            {'id': r.pk, 'title': r.title, 'description': r.description, 'image_url': r.image_url}
            for r in quiz.results.all()
        ],
    }

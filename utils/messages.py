"""
Centralized UI messages.
All user-facing text in Russian for consistency.
"""

MESSAGES = {
    # Success messages
    'login_success': 'Добро пожаловать, {name}',
    'logout_success': 'Вы вышли из системы',
    'booking_created': 'Заявка {ticket} принята. Мы перезвоним для подтверждения',
    'booking_created_confirmed': 'Бронирование {ticket} подтверждено',
    'booking_accepted': 'Бронирование подтверждено',
    'booking_cancelled': 'Бронирование отменено',
    'booking_completed': 'Бронирование завершено',
    'booking_no_show': 'Отмечена неявка',
    'payment_closed': 'Оплата закрыта',
    'discount_applied': 'Скидка применена',
    'block_created': 'Время закрыто для бронирования',
    'block_removed': 'Время снова открыто для бронирования',

    # Error messages
    'invalid_credentials': 'Неверное имя пользователя или пароль',
    'account_disabled': 'Учетная запись отключена. Обратитесь к администратору',
    'login_required': 'Войдите в систему',
    'forbidden': 'Недостаточно прав',
    'not_found': 'Не найдено',
    'json_required': 'Ожидается JSON',
    'server_error': 'Внутренняя ошибка сервера',
    'invalid_date': 'Дата должна быть в формате YYYY-MM-DD',
    'range_too_long': 'Период не может превышать {days} дней',
}

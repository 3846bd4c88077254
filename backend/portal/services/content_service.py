"""What the report page shows, as a pure function of the candidate's state."""

from portal.schemas.application import ReportPageContent

REPORT_STATUS_LABELS = {
    "VALID": "VALIDÉ",
    "NOT_VALID": "NON VALIDÉ",
    "PENDING": "EN ATTENTE",
}

UPDATE_CTA = "Mettre à jour votre devoir maison"
CLOSED_CTA = "Soumission fermée"


def report_status_label(report_status: str | None) -> str:
    return REPORT_STATUS_LABELS.get(report_status or "PENDING", REPORT_STATUS_LABELS["PENDING"])


def select_report_content(
    has_application: bool,
    application_status: str | None,
    report_status: str | None,
    has_report: bool,
    applications_open: bool,
) -> ReportPageContent:
    if not has_application or application_status == "DRAFT":
        return ReportPageContent(
            title="Vous devez d'abord soumettre votre candidature",
            subtitle="Veuillez compléter et soumettre votre candidature avant de pouvoir envoyer votre travail.",
            cta_label="Accéder à ma candidature",
            redirect_to_application=True,
            upload_enabled=False,
        )

    if not has_report:
        if not applications_open:
            return ReportPageContent(
                title="Les soumissions des devoirs sont fermées",
                subtitle="Les candidatures sont actuellement fermées, vous ne pouvez donc pas "
                         "soumettre votre travail pour le moment.",
                cta_label=CLOSED_CTA,
                upload_enabled=False,
            )
        return ReportPageContent(
            title="Vous n'avez pas encore envoyé de devoir maison",
            subtitle="Veuillez envoyer votre devoir maison en cliquant sur le bouton ci-dessous.",
            cta_label="Envoyer votre devoir maison",
        )

    report_status = report_status or "PENDING"
    if report_status == "VALID":
        # Replacing a validated report sends it back to review.
        return ReportPageContent(
            title="Votre travail a été approuvé",
            subtitle="Votre travail a été validé. Si vous soumettez un nouveau fichier, "
                     "le statut sera remis à 'En attente' pour réévaluation.",
            cta_label=UPDATE_CTA if applications_open else CLOSED_CTA,
            upload_enabled=applications_open,
        )

    if report_status == "NOT_VALID":
        if not applications_open:
            return ReportPageContent(
                title="Votre travail n'a pas été approuvé",
                subtitle="Votre travail n'a pas été validé. Les soumissions sont actuellement "
                         "fermées, vous ne pouvez pas le mettre à jour.",
                cta_label=CLOSED_CTA,
                upload_enabled=False,
            )
        return ReportPageContent(
            title="Votre travail n'a pas été approuvé",
            subtitle="Votre travail n'a pas été validé. Veuillez le mettre à jour et le soumettre à nouveau.",
            cta_label=UPDATE_CTA,
        )

    if not applications_open:
        return ReportPageContent(
            title="Votre devoir maison est en cours d'examen",
            subtitle="Votre devoir maison a été envoyé et est en cours d'examen. Les soumissions "
                     "sont actuellement fermées, vous ne pouvez pas le mettre à jour.",
            cta_label=CLOSED_CTA,
            upload_enabled=False,
        )
    return ReportPageContent(
        title="Votre devoir maison est en cours d'examen",
        subtitle="Votre devoir maison a été envoyé et est en cours d'examen par notre équipe.",
        cta_label=UPDATE_CTA,
    )
